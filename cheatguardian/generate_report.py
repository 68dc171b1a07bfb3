"""
Review a recorded exam session: print the status and alert breakdown from
session_log.csv and write the Excel report for the proctor.

Usage (from project root, with venv activated):

    python -m cheatguardian.generate_report --csv session_log.csv --out session_report.xlsx
    python -m cheatguardian.generate_report --csv session_log.csv --no-excel
"""

import argparse
import os
from typing import List

from cheatguardian.core.logger import read_session_log
from cheatguardian.core.report import ReportGenerator, SessionSummary


def format_summary(summary: SessionSummary) -> str:
    """Plain-text session overview, one section per table of the Excel report."""
    lines: List[str] = [
        f"Ticks: {summary.tick_count} ({summary.dropped_ticks} dropped)",
        f"Mean attention: {summary.mean_attention:.1f}%",
    ]

    if not summary.status_breakdown.empty:
        lines.append("Status:")
        for row in summary.status_breakdown.itertuples(index=False):
            lines.append(f"  {row.status:<8} {int(row.ticks):>6} ticks  {row.share * 100:5.1f}%")

    if summary.alert_counts.empty:
        lines.append("Alerts: none")
    else:
        total = int(summary.alert_counts["count"].sum())
        lines.append(f"Alerts: {total} (first {summary.first_alert}, last {summary.last_alert})")
        for row in summary.alert_counts.to_dict("records"):
            lines.append(f"  [{row['type']}] {row['message']} x{int(row['count'])}")

    return "\n".join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Summarize a recorded exam session and export the Excel report.")
    parser.add_argument(
        "--csv",
        type=str,
        default="session_log.csv",
        help="Path to session_log.csv (default: session_log.csv in project root)",
    )
    parser.add_argument(
        "--out",
        type=str,
        default="session_report.xlsx",
        help="Output Excel report path (default: session_report.xlsx in project root)",
    )
    parser.add_argument("--no-excel", action="store_true", help="Only print the session summary")

    args = parser.parse_args(argv)

    csv_path = os.path.abspath(args.csv)
    if not os.path.exists(csv_path):
        raise SystemExit(f"CSV file not found: {csv_path}")

    df = read_session_log(csv_path)
    if df.empty:
        print("Warning: session log is empty, nothing was recorded.")

    report = ReportGenerator(df)
    print(format_summary(report.summarize()))

    if not args.no_excel:
        out_path = os.path.abspath(args.out)
        report.export_excel(out_path)
        print(f"Session report written to: {out_path}")


if __name__ == "__main__":
    main()
