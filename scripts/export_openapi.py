"""Export the FastAPI-generated OpenAPI spec to a static JSON file."""

import argparse
import json
from pathlib import Path

from main import app

DEFAULT_PATH = Path(__file__).resolve().parent.parent / "openapi.json"


def main():
    parser = argparse.ArgumentParser(description="Write the OpenAPI document to disk")
    parser.add_argument("--output", type=Path, default=DEFAULT_PATH)
    args = parser.parse_args()

    schema = app.openapi()
    args.output.write_text(json.dumps(schema, indent=2) + "\n")
    print(f"Wrote {args.output}")


if __name__ == "__main__":
    main()
