#!/usr/bin/env python3
"""
Print tabulated election results from the election API.

Project: Election Portal

Usage:
    python scripts/show_results.py --token <bearer token>
    ELECTION_API_URL=http://api:5000 python scripts/show_results.py --token ...
"""
import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

from election_portal.portal.client import ElectionApiClient
from election_portal.results import ResultsView, tabulate_results
from election_portal.shared import ElectionApiError

load_dotenv()


def render(view: ResultsView) -> str:
    """Render a results view as plain text."""
    lines = [f"Voting is currently {'OPEN' if view.is_voting_open else 'CLOSED'}."]

    if view.pending:
        lines.append(view.notice)
        return "\n".join(lines)

    if not view.positions:
        lines.append("No results available.")
        return "\n".join(lines)

    for tally in view.positions:
        lines.append("")
        lines.append(f"{tally.position_name} (Winners: {tally.number_of_winners}, Total votes: {tally.total_votes:,})")
        lines.append("-" * 60)
        for standing in tally.standings:
            if standing.is_winner:
                marker = "WINNER"
            elif standing.is_tied_for_last_seat:
                marker = "TIED FOR LAST SEAT"
            else:
                marker = ""
            lines.append(
                f"{standing.rank:>3}. {standing.name:<30} "
                f"{standing.votes:>8,} {standing.share_label:>5}  {marker}"
            )
        if tally.has_unresolved_tie:
            lines.append("    ! Tie at the winning cutoff needs manual review")

    return "\n".join(lines)


async def fetch_view(base_url: str, token: str) -> ResultsView:
    api = ElectionApiClient()
    await api.initialize(base_url=base_url)
    try:
        snapshot = await api.get_results(token)
    finally:
        await api.close()
    return tabulate_results(snapshot)


def main():
    parser = argparse.ArgumentParser(description="Print tabulated election results")
    parser.add_argument(
        "--api-url",
        default=os.getenv("ELECTION_API_URL", "http://localhost:5000"),
        help="Election API base URL"
    )
    parser.add_argument(
        "--token",
        default=os.getenv("ELECTION_API_TOKEN"),
        help="Bearer token used to read results"
    )
    args = parser.parse_args()

    if not args.token:
        print("A bearer token is required (--token or ELECTION_API_TOKEN).", file=sys.stderr)
        sys.exit(2)

    try:
        view = asyncio.run(fetch_view(args.api_url, args.token))
    except ElectionApiError as e:
        print(f"Error fetching results: {e}", file=sys.stderr)
        sys.exit(1)

    print(render(view))


if __name__ == "__main__":
    main()
