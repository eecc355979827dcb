#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
from pathlib import Path


STEPS = ["clone", "build", "test", "publish"]


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample stages file for the JSON stage source")
    parser.add_argument("--output", required=True, help="output file path (.json)")
    parser.add_argument("--pipeline", action="append", help="pipeline file name, repeatable")
    parser.add_argument("--stages", type=int, default=2, help="stages per pipeline")
    args = parser.parse_args()

    pipelines = args.pipeline or [".drone.yml"]
    records = []
    for pipeline_file in pipelines:
        for index in range(args.stages):
            records.append(
                {
                    "pipelineFile": pipeline_file,
                    "name": f"stage-{index + 1}",
                    "status": "none",
                    "steps": [{"name": step, "status": "none"} for step in STEPS],
                }
            )

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as fp:
        json.dump(records, fp, indent=2)

    print(f"stages file written: {output} ({len(records)} stage records)")


if __name__ == "__main__":
    main()
