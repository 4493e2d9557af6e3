"""
Command-line entry point.

    cachescout https://example.com --max-pages 5 --monitor --monitor-cycles 3
"""

import argparse
import asyncio
import json
import logging
import signal
import sys

from . import __version__
from .core.config import AgentConfig, load_agent_config, settings
from .core.errors import ConfigurationError
from .core.events import AgentEvent, EventType
from .core.logging_config import configure_logging
from .core.models import Summary
from .agents.orchestrator import AutonomousAgent


logger = logging.getLogger("cachescout.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cachescout",
        description="Autonomous WordPress cache diagnostics",
    )
    parser.add_argument("url", help="Base URL to analyze (e.g. https://example.com)")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")

    crawl = parser.add_argument_group("Crawl")
    crawl.add_argument("--max-pages", type=int, help=f"Maximum pages to analyze (default: {settings.max_pages})")
    crawl.add_argument("--max-depth", type=int, help=f"Maximum link depth (default: {settings.max_depth})")
    crawl.add_argument("--timeout", type=int, dest="timeout_ms", help="Per-request timeout in ms")

    exp = parser.add_argument_group("Experiments & monitoring")
    exp.add_argument("--no-experiments", action="store_true", help="Skip cache experiments")
    exp.add_argument("--monitor", action="store_true", help="Keep re-analyzing the base URL after the run")
    exp.add_argument("--monitor-interval", type=int, dest="monitor_interval_ms", help="Monitoring interval in ms")
    exp.add_argument("--monitor-cycles", type=int, dest="max_monitor_cycles", help="Stop monitoring after N cycles (0 = until interrupted)")

    ai = parser.add_argument_group("AI review")
    ai.add_argument("--ai", action="store_true", help="Enable LLM narrative review of interesting pages")
    ai.add_argument("--provider", choices=["openai", "anthropic"], help="LLM provider")

    out = parser.add_argument_group("Output")
    out.add_argument("--json", action="store_true", help="Print the result as JSON on stdout")
    out.add_argument("-v", "--verbose", action="store_true", help="Debug logging and learned rules in the report")
    return parser


def config_from_args(args: argparse.Namespace) -> AgentConfig:
    """
    Raises:
        ConfigurationError: If any value is invalid
    """
    return load_agent_config(
        args.url,
        max_pages=args.max_pages,
        max_depth=args.max_depth,
        timeout_ms=args.timeout_ms,
        experiment_mode=False if args.no_experiments else None,
        monitor_mode=args.monitor,
        monitor_interval_ms=args.monitor_interval_ms,
        max_monitor_cycles=args.max_monitor_cycles,
        use_ai=True if args.ai else None,
        llm_provider=args.provider,
    )


def _echo_changes(event: AgentEvent) -> None:
    if event.type == EventType.CHANGES_DETECTED:
        for change in event.data.get("changes", []):
            print(f"  ! {change['description']}", file=sys.stderr)


async def run_agent(agent: AutonomousAgent) -> Summary:
    """Run the agent with SIGINT mapped to a cooperative stop."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, agent.stop)
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl+C aborts instead
        pass

    agent.events.subscribe(_echo_changes)
    try:
        return await agent.run()
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass


# =============================================================================
# Report
# =============================================================================

def _section(title: str) -> None:
    print(f"\n{title}")
    print("-" * len(title))


def print_report(agent: AutonomousAgent, summary: Summary, verbose: bool = False) -> None:
    memory = agent.memory

    _section(f"CacheScout report: {memory.base_url}")
    print(f"Pages analyzed:   {summary.pages_analyzed} ({len(memory.failed)} failed)")
    if summary.pages_analyzed == 0:
        print("Could not analyze the site: no page was fetched successfully.")
    else:
        status = "working" if summary.cache_working else "NOT working"
        print(f"Page cache:       {status} ({summary.cache_working_pages}/{summary.pages_analyzed} pages)")
        print(f"Average TTFB:     {summary.average_ttfb_ms}ms")
    print(f"Plugins:          {', '.join(summary.detected_plugins) or 'none detected'}")
    print(f"CDNs:             {', '.join(summary.detected_cdns) or 'none detected'}")

    if summary.conflicts:
        _section("Conflicts")
        for conflict in summary.conflicts:
            print(f"  - {conflict}")

    if summary.critical_issues:
        _section("Critical issues")
        for issue in summary.critical_issues:
            print(f"  - {issue}")

    if summary.recommendations:
        _section("Recommendations")
        for i, rec in enumerate(summary.recommendations, 1):
            print(f"  {i}. {rec}")

    if summary.experiment_results is not None:
        tally = summary.experiment_results
        _section(f"Experiments ({tally.passed} passed, {tally.failed} failed)")
        for experiment in memory.experiments:
            verdict = {True: "PASS", False: "FAIL", None: "INFO"}[experiment.passed]
            print(f"  [{verdict}] {experiment.name}: {experiment.insight or ''}")

    if memory.insights:
        _section("Insights")
        for insight in memory.insights:
            print(f"  - {insight}")

    if memory.failed:
        _section("Failed URLs")
        for url, error in memory.failed.items():
            print(f"  - {url}: {error}")

    if verbose and memory.learned_rules:
        _section("Learned rules")
        for rule in memory.learned_rules:
            print(
                f"  - {rule.id}: {rule.condition} -> {rule.action} "
                f"(confidence {rule.confidence:.1f}, applied {rule.times_applied}x)"
            )


def report_json(agent: AutonomousAgent, summary: Summary) -> str:
    memory = agent.memory
    document = {
        "run_id": agent.run_id,
        "base_url": memory.base_url,
        "summary": summary.model_dump(mode="json"),
        "insights": memory.insights,
        "failed": memory.failed,
        "experiments": [e.model_dump(mode="json") for e in memory.experiments],
        "learned_rules": [r.model_dump() for r in memory.learned_rules],
        "recon": memory.recon.model_dump(mode="json"),
    }
    return json.dumps(document, indent=2)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else settings.log_level)

    try:
        config = config_from_args(args)
        agent = AutonomousAgent(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        summary = asyncio.run(run_agent(agent))
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_FAILED
    except Exception as e:
        logger.exception("Run failed: %s", e)
        return EXIT_FAILED

    if args.json:
        print(report_json(agent, summary))
    else:
        print_report(agent, summary, verbose=args.verbose)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
