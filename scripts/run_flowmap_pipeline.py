#!/usr/bin/env python3
"""flowmap Flow Reconciliation Runner.

Usage:
    python scripts/run_flowmap_pipeline.py scripts/user_config.py
    python scripts/run_flowmap_pipeline.py scripts/user_config.py --table-path data/flows_rev7.csv
    python scripts/run_flowmap_pipeline.py scripts/user_config.py --dump > features.geojson

Note: User config in scripts/user_config.py, expert defaults in src/flowmap/schemas/param.py
"""

import sys
import argparse
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from flowmap.cli.run_flowmap import run_flowmap_pipeline
from flowmap.pipeline.store import FlowDataError


def main():
    parser = argparse.ArgumentParser(description="Reconcile flow table and geometry sources")
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("--table-path", help="Override flow table path or URL")
    parser.add_argument("--max-workers", type=int, help="Concurrent geometry source fetches")
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for the data load")
    parser.add_argument("--dump", action="store_true", help="Write FeatureCollection JSON to stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    try:
        run_flowmap_pipeline(
            args.config,
            cli_args={
                "table_path": args.table_path,
                "max_workers": args.max_workers,
                "log_file": args.log_file,
            },
            verbose=args.verbose,
            dump=args.dump,
            timeout=args.timeout,
        )
    except FlowDataError as e:
        print(f"Flow data could not be loaded: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
