"""Command-line interface for preparing the joined SCOTUS vote table."""

import argparse
from pathlib import Path

from scotus_ideology.cleaning import load_and_join, summarize_join
from scotus_ideology.config import FEATURE_AREAS, ISSUE_AREAS, SCORES_FILE, VOTES_FILE
from scotus_ideology.output import save_joined_csv


def _cmd_prepare(args: argparse.Namespace) -> None:
    data_dir = args.data_dir
    votes_path = data_dir / (args.votes_file or VOTES_FILE)
    scores_path = data_dir / (args.scores_file or SCORES_FILE)

    print(f"Votes:  {votes_path}")
    print(f"Scores: {scores_path}")
    votes, scores, joined = load_and_join(votes_path, scores_path)

    summary = summarize_join(votes, scores, joined)
    print(f"  Clean votes:   {summary['vote_rows']:,} rows")
    print(f"  Scores:        {summary['score_rows']:,} rows")
    print(f"  Joined:        {summary['joined_rows']:,} rows")
    print(f"  Dropped votes: {summary['vote_rows_dropped']:,} (no matching score)")

    save_joined_csv(args.output or data_dir, joined)


def _cmd_areas(args: argparse.Namespace) -> None:
    print("SCDB issue areas:")
    for code, name in ISSUE_AREAS.items():
        flag = "feature" if name in FEATURE_AREAS else "-"
        print(f"  {code:>2}  {name:22s}  {flag}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="scotus-ideology",
        description="Clean and join SCDB justice votes with per-term ideology scores.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    prepare = sub.add_parser("prepare", help="Load, clean, join, and write joined_votes.csv")
    prepare.add_argument(
        "--data-dir",
        type=Path,
        default=Path("."),
        help="Directory holding the input CSVs (default: current directory)",
    )
    prepare.add_argument(
        "--votes-file", default=None, help=f"Votes CSV name (default: {VOTES_FILE})"
    )
    prepare.add_argument(
        "--scores-file", default=None, help=f"Scores CSV name (default: {SCORES_FILE})"
    )
    prepare.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output directory (default: the data directory)",
    )
    prepare.set_defaults(func=_cmd_prepare)

    areas = sub.add_parser("areas", help="List issue areas and which are model features")
    areas.set_defaults(func=_cmd_areas)

    args = parser.parse_args(argv)
    args.func(args)
