from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Make docmerge/ importable even when run from the repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from docmerge.core.config import get_settings
from docmerge.core.errors import MissingEngineError, UserFacingError
from docmerge.core.logging_config import configure_logging
from docmerge.main import build_pipeline


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Merge a docx/pptx template with a CSV, locally")
    p.add_argument("template", help="Path to .docx or .pptx template")
    p.add_argument("datafile", help="Path to CSV (header row = field names)")
    p.add_argument("out_dir", help="Directory for the outputs and merge.zip")
    p.add_argument(
        "--output-type",
        dest="output_type",
        default="pdf",
        help="pdf | docx | pptx | png | jpg (unknown -> pdf)",
    )
    return p


def main() -> None:
    args = _build_arg_parser().parse_args()
    settings = get_settings()
    configure_logging(settings.log_level)

    template = Path(args.template)
    datafile = Path(args.datafile)
    out_dir = Path(args.out_dir)

    try:
        pipeline = build_pipeline(settings)
    except MissingEngineError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)

    try:
        result = asyncio.run(
            pipeline.run(
                template_name=template.name,
                template_bytes=template.read_bytes() if template.is_file() else None,
                data_bytes=datafile.read_bytes() if datafile.is_file() else None,
                output_type=args.output_type,
            )
        )
    except UserFacingError as e:
        print(f"[ERROR] {e.code}: {e.message}")
        sys.exit(2)

    out_dir.mkdir(parents=True, exist_ok=True)
    for artifact in result.artifacts:
        (out_dir / artifact.filename).write_bytes(artifact.content)
    (out_dir / "merge.zip").write_bytes(result.archive)

    print("[RESULT]")
    print(f"  label:    {result.label}")
    print(f"  files:    {len(result.artifacts)}")
    print(f"  skipped:  {len(result.skipped)}")
    for s in result.skipped:
        print(f"    row {s.row_index + 1}: {s.reason}")
    print(f"  zip saved to: {(out_dir / 'merge.zip').resolve()}")


if __name__ == "__main__":
    main()
