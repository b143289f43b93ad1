"""
Health Report Generator — Command-Line Interface

Runs the LLM response pipeline and the report generator from the terminal:
1. Recover structured JSON from saved LLM completions (no LLM call)
2. Generate and store full health reports from a request file

Usage:
    python main.py                                # Paste a completion, see what the pipeline recovers
    python main.py --extract out.txt --kind eeg   # Run the pipeline on a saved completion
    python main.py --report request.json          # Generate and store a report
    python main.py --list                         # List stored reports
"""

import argparse
import json
import sys

from dotenv import load_dotenv

from healthreport.errors import AnalysisFailedError
from healthreport.logging_config import setup_logging
from healthreport.pipeline import dump_result, run_resilient_extraction
from healthreport.schemas import ResponseKind

KIND_CHOICES = [k.value for k in ResponseKind]


def interactive_mode():
    """Paste completions and show what the pipeline makes of them."""
    print("\n" + "=" * 60)
    print("  LLM RESPONSE PIPELINE")
    print("  Paste a raw completion to see the recovered JSON")
    print("=" * 60)

    kind = ResponseKind.EEG
    while True:
        print(f"\nCurrent kind: {kind.value}")
        print("  [p]    Paste a completion")
        print("  [k]    Switch response kind")
        print("  [q]    Quit")

        choice = input("\nChoice: ").strip().lower()

        if choice == "q":
            print("Goodbye!")
            break

        if choice == "k":
            print(f"Available kinds: {', '.join(KIND_CHOICES)}")
            name = input("Kind: ").strip()
            if name in KIND_CHOICES:
                kind = ResponseKind(name)
            else:
                print("Unknown kind, keeping current.")
            continue

        if choice != "p":
            print("Invalid choice.")
            continue

        print("Paste the completion (enter two blank lines when done):")
        lines = []
        blank_count = 0
        while True:
            line = input()
            if line == "":
                blank_count += 1
                if blank_count >= 2:
                    break
            else:
                blank_count = 0
            lines.append(line)
        raw = "\n".join(lines).strip()

        if not raw:
            print("Nothing entered.")
            continue

        print(dump_result(run_resilient_extraction(raw, kind)))


def extract_file(path: str, kind: str):
    with open(path, encoding="utf-8") as f:
        raw = f.read()
    if not raw.strip():
        print(f"{path} is empty.")
        sys.exit(1)
    print(dump_result(run_resilient_extraction(raw, kind)))


def generate_report_file(path: str):
    from healthreport.provider import create_provider
    from healthreport.report import generate_health_report
    from healthreport.report_store import create_report_store

    with open(path, encoding="utf-8") as f:
        request = json.load(f)

    db = {"provider": create_provider(), "store": create_report_store()}
    print(f"Generating report with {db['provider'].provider_name}...")

    try:
        report = generate_health_report(
            request.get("personal_info"), request.get("measurement"), db,
        )
    except AnalysisFailedError as e:
        print(f"Analysis could not be completed, please retry. ({e})")
        sys.exit(1)

    if "error" in report:
        print(f"{report['error']}:")
        for detail in report["details"]:
            print(f"  - {detail}")
        sys.exit(1)

    report_id = db["store"].save(report, tags=request.get("tags"), notes=request.get("notes", ""))

    print(f"\n{'=' * 60}")
    print(f"  HEALTH REPORT {report_id}")
    print(f"  Overall score: {report['overall_score']} ({report['health_status']})")
    print(f"{'=' * 60}")
    for kind, quality in report["quality"].items():
        flags = []
        if quality["repaired"]:
            flags.append("repaired")
        if quality["used_fallback"]:
            flags.append("fallback")
        print(f"  {kind:<18} completeness={quality['completeness']:>3} "
              f"attempts={quality['attempts']} {' '.join(flags)}")
    print(f"\n  {report['disclaimer']}")


def list_reports():
    from healthreport.report_store import create_report_store

    store = create_report_store()
    records = store.list_reports()
    if not records:
        print("No stored reports.")
        return

    for record in records:
        report = record["report"]
        tags = f" [{', '.join(record['tags'])}]" if record["tags"] else ""
        print(f"{record['id']}  {record['created_at']}  "
              f"score={report.get('overall_score')}{tags}")

    stats = store.stats()
    print(f"\n{stats['count']} report(s), average score {stats['average_score']}")


def main():
    load_dotenv()
    setup_logging()
    parser = argparse.ArgumentParser(description="Health Report Generator")
    parser.add_argument("--extract", metavar="FILE",
                        help="Run the response pipeline on a saved completion")
    parser.add_argument("--kind", choices=KIND_CHOICES, default="eeg",
                        help="Response kind for --extract (default: eeg)")
    parser.add_argument("--report", metavar="FILE",
                        help="Generate and store a report from a JSON request file")
    parser.add_argument("--list", action="store_true",
                        help="List stored reports")
    args = parser.parse_args()

    if args.extract:
        extract_file(args.extract, args.kind)
    elif args.report:
        generate_report_file(args.report)
    elif args.list:
        list_reports()
    else:
        interactive_mode()


if __name__ == "__main__":
    main()
