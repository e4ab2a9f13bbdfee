"""Remedy - health research from the command line.

Runs one question through the research pipeline and prints progress as it streams.
"""

import argparse
import asyncio

from app.agents.orchestrator import HealthResearchOrchestrator


def print_report(report: dict) -> None:
    print(f"\n{'=' * 50}")
    print("REPORT:")
    print(f"{'=' * 50}")
    print(
        f"Safety: {report.get('safety_rating')} | Evidence: {report.get('evidence_level')} "
        f"| Risk score: {report.get('risk_score')}"
    )
    if report.get("credits_unavailable"):
        print("(degraded: live evidence unavailable)")
    print(f"\n{report.get('detailed_analysis', '')}\n")

    citations = report.get("citations", [])
    if citations:
        print("Sources:")
        for i, citation in enumerate(citations, 1):
            tier = citation.get("source_tier") or "unknown"
            print(f"  {i}. [{tier}] {citation.get('title')} - {citation.get('url')}")

    for extra in report.get("disclaimer_extras", []):
        print(f"\n! {extra}")
    print(f"\n{report.get('disclaimer', '')}")


async def run_research(question: str, offline: bool = False) -> None:
    print(f"Question: {question}")
    print("-" * 50)

    orchestrator = HealthResearchOrchestrator()

    async for event in orchestrator.research(question, offline=offline):
        event_type = event.event.value
        data = event.data

        if event_type == "agent_role":
            print(f"\n[~] {data.get('role')}")

        elif event_type == "planning":
            print(f"[*] {data.get('query_type')} plan:")
            for task in data.get("tasks", []):
                print(f"    - {task}")

        elif event_type == "searching":
            print(f"  [?] {data.get('query')}")

        elif event_type == "search_results":
            print(f"  [+] {len(data.get('sources', []))} new sources")

        elif event_type == "reading":
            print(f"  [>] {data.get('title')}")

        elif event_type == "reasoning":
            print(f"  ... {data.get('thought')}")

        elif event_type == "complete":
            print_report(data.get("report", {}))

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}")


def main():
    parser = argparse.ArgumentParser(description="Remedy health research")
    parser.add_argument("--question", "-q", required=True, help="Health question to research")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip all provider calls and return the degraded offline report",
    )

    args = parser.parse_args()

    asyncio.run(run_research(args.question, args.offline))


if __name__ == "__main__":
    main()
