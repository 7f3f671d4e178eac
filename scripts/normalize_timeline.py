#!/usr/bin/env python3
"""Normalize a raw emotion timeline JSON file.

This script reads a raw emotion-timeline record (from a file, a local log
store, the vault API, or an exported vibe_whisper_summary row), runs it
through the normalizer, and prints the normalized record as JSON.

Usage:
    python scripts/normalize_timeline.py --input raw.json
    python scripts/normalize_timeline.py --input raw.json --report --pretty
    python scripts/normalize_timeline.py --device device-1 --date 2025-03-01 --data_root data_accounts
    python scripts/normalize_timeline.py --device device-1 --date 2025-03-01 --vault_url http://localhost:3001
    python scripts/normalize_timeline.py --supabase_row row.json --report

Example output (--report):
    {
        "status": "ok",
        "timeline": {"timePoints": ["09:00", "09:30"], "emotionScores": [55, 0], ...},
        "corrections": [
            {"field": "emotionScores", "original_value": 55.4, "corrected_value": 55,
             "reason": "float_rounded", "index": 0}
        ],
        "stats": {"coverage_percent": 4.2, "quality": "low", ...}
    }
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from emotion_timeline import compute_stats, normalize_with_report
from vault import LogStore, VaultClient, summary_row_to_raw
from vault.errors import VaultError


def main() -> int:
    """Main entry point for the script.

    Returns:
        Exit code (0 for success, 1 when there is no data, 2 for errors).
    """
    parser = argparse.ArgumentParser(
        description="Normalize a raw emotion timeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --input raw.json
    %(prog)s --input raw.json --report --pretty
    %(prog)s --device device-1 --date 2025-03-01 --data_root data_accounts
    %(prog)s --device device-1 --date 2025-03-01 --vault_url http://localhost:3001
    %(prog)s --supabase_row row.json --report
        """,
    )

    # Source arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        default=None,
        help="Path to a raw emotion timeline JSON file ('-' for stdin)",
    )
    parser.add_argument(
        "--supabase_row",
        type=str,
        default=None,
        help="Path to one vibe_whisper_summary row exported as a JSON object",
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Device ID to read from the log store or vault API",
    )
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Day to read (YYYY-MM-DD), used with --device",
    )
    parser.add_argument(
        "--data_root",
        type=str,
        default="data_accounts",
        help="Local log store root directory (default: data_accounts)",
    )
    parser.add_argument(
        "--vault_url",
        type=str,
        default=None,
        help="Fetch from this vault API instead of the local log store",
    )

    # Output arguments
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path (default: stdout)",
    )
    parser.add_argument(
        "--pretty", "-p",
        action="store_true",
        help="Pretty-print JSON output with indentation",
    )
    parser.add_argument(
        "--report", "-r",
        action="store_true",
        help="Output status, corrections and statistics alongside the timeline",
    )
    parser.add_argument(
        "--today",
        type=str,
        default=None,
        help="Date to use when the record has none (YYYY-MM-DD, default: today)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every correction to stderr",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    sources = [args.input, args.supabase_row, args.device]
    if sum(source is not None for source in sources) != 1:
        parser.error("exactly one of --input, --supabase_row or --device is required")
    if args.device is not None and args.date is None:
        parser.error("--date is required with --device")

    today = None
    if args.today is not None:
        try:
            fixed = date.fromisoformat(args.today)
        except ValueError:
            parser.error(f"--today must be YYYY-MM-DD, got {args.today!r}")
        today = lambda: fixed  # noqa: E731

    # Load the raw record
    try:
        if args.input is not None:
            if args.input == "-":
                raw = json.load(sys.stdin)
            else:
                input_path = Path(args.input)
                if not input_path.exists():
                    print(f"Error: Input file not found: {args.input}", file=sys.stderr)
                    return 2
                raw = json.loads(input_path.read_text(encoding="utf-8"))
        elif args.supabase_row is not None:
            row_path = Path(args.supabase_row)
            if not row_path.exists():
                print(f"Error: Row file not found: {args.supabase_row}", file=sys.stderr)
                return 2
            row = json.loads(row_path.read_text(encoding="utf-8"))
            if not isinstance(row, dict):
                print("Error: Row file must contain a JSON object", file=sys.stderr)
                return 2
            raw = summary_row_to_raw(row)
        elif args.vault_url is not None:
            raw = VaultClient(base_url=args.vault_url).fetch_emotion_timeline(args.device, args.date)
        else:
            raw = LogStore(args.data_root).get_emotion_timeline(args.device, args.date)
    except json.JSONDecodeError as e:
        print(f"Error: Input is not valid JSON: {e}", file=sys.stderr)
        return 2
    except VaultError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = normalize_with_report(raw, today=today)

    if result.timeline is None:
        print("No measurement data for this date", file=sys.stderr)
        if result.error is not None:
            print(f"  {result.error}", file=sys.stderr)
        return 1

    if args.report:
        output = result.to_dict(include_corrections=True)
        output["stats"] = compute_stats(result.timeline).to_dict()
    else:
        output = result.timeline.to_dict()

    indent = 2 if args.pretty else None
    json_output = json.dumps(output, indent=indent, ensure_ascii=False)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_output + "\n", encoding="utf-8")
        print(f"Output written to: {args.output}", file=sys.stderr)
    else:
        print(json_output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
