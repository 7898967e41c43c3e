"""
Command-line interface for the Fantasy Decision Engine.
Built with Click and Rich for terminal output.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import click
import numpy as np
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from .config import get_config
from .engine import DecisionEngine
from .models import DecisionOutcome, DecisionResult, RiskLevel
from .seed_data import seed_policies

console = Console()
logging.basicConfig(level=logging.WARNING, format="%(message)s")

RISK_COLORS = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
}


def build_engine(seed: Optional[int] = None) -> DecisionEngine:
    """Engine loaded with the bootstrap policy bank."""
    config = get_config()
    if seed is not None:
        config.random_seed = seed
    return DecisionEngine(
        config=config,
        policies=seed_policies(),
        rng=np.random.default_rng(config.random_seed),
    )


def _load_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON in {source}: {e}")


@click.group()
@click.version_option(version="1.0.0", prog_name="Fantasy Decision Engine")
@click.option("--verbose", "-v", is_flag=True, help="Show engine log messages")
def cli(verbose: bool):
    """Fantasy Decision Engine - contextual start/sit recommendations that learn."""
    if verbose:
        logging.getLogger().setLevel(logging.INFO)


@cli.command()
def policies():
    """Show the bootstrap policy bank."""
    table = Table(title="Contextual Policies", box=box.ROUNDED)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Contexts")
    table.add_column("Actions")
    table.add_column("Accuracy", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Explore", justify="right")
    table.add_column("Episodes", justify="right")

    for policy in seed_policies():
        table.add_row(
            policy.id,
            ", ".join(policy.applicable_contexts),
            ", ".join(policy.action_space),
            f"{policy.contextual_accuracy:.0%}",
            f"{policy.success_rate:.0%}",
            f"{policy.exploration_rate:.2f}",
            f"{policy.training_episodes:,}",
        )

    console.print(table)


@cli.command()
@click.option("--player", "-p", required=True, help="Player id")
@click.option("--context", "-c", "context_json", default=None, help="Game context as JSON (camelCase keys)")
@click.option("--context-file", "-f", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Read the game context from a JSON file")
@click.option("--seed", type=int, default=None, help="Exploration seed for reproducible output")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def recommend(player: str, context_json: Optional[str], context_file: Optional[str],
              seed: Optional[int], as_json: bool):
    """Recommend an action for one player in one game situation."""
    if context_json and context_file:
        raise click.UsageError("Use either --context or --context-file, not both")

    if context_file:
        with open(context_file) as f:
            context = _load_json(f.read(), context_file)
    else:
        context = _load_json(context_json or "{}", "--context")
    if not isinstance(context, dict):
        raise click.ClickException("Game context must be a JSON object")

    engine = build_engine(seed)
    result = engine.process_decision(player, context)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    _print_decision(result)


def _print_decision(result: DecisionResult) -> None:
    decision = result.recommendation
    color = RISK_COLORS[decision.risk_level]
    ev = f"{decision.expected_value:.1f} pts" if decision.expected_value is not None else "n/a"

    lines = [
        f"[bold]Action:[/] [bold cyan]{decision.action}[/]"
        + (" [magenta](exploring)[/]" if decision.is_exploration else ""),
        f"[bold]Confidence:[/] {decision.confidence:.0%}   "
        f"[bold]Risk:[/] [{color}]{decision.risk_level.value.upper()}[/]   "
        f"[bold]Expected:[/] {ev}",
        f"[bold]Context:[/] {decision.context_hash}",
    ]
    if decision.alternatives:
        lines.append(f"[bold]Alternatives:[/] {', '.join(decision.alternatives)}")
    if decision.policy_ids:
        lines.append(f"[bold]Policies:[/] {', '.join(decision.policy_ids)}")

    lines.append("\n[bold]Reasoning:[/]")
    lines.extend(f"  - {r}" for r in decision.reasoning)
    if result.contextual_factors:
        lines.append("\n[bold]Key Factors:[/]")
        lines.extend(f"  - {f}" for f in result.contextual_factors)

    console.print(Panel("\n".join(lines), title=f"Recommendation for {decision.player_id}", border_style=color))

    table = Table(title="Decision Attribution", box=box.SIMPLE)
    table.add_column("Factor")
    table.add_column("Share", justify="right")
    for name, share in decision.contextual_weights.as_dict().items():
        table.add_row(name.replace("_", " ").title(), f"{share:.1%}")
    console.print(table)


@cli.command()
@click.argument("scenario_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--seed", type=int, default=None, help="Exploration seed for reproducible output")
@click.option("--csv", "csv_path", type=click.Path(dir_okay=False), default=None,
              help="Export the episode log to CSV")
def replay(scenario_file: str, seed: Optional[int], csv_path: Optional[str]):
    """
    Replay decisions and their outcomes through the learning loop.

    SCENARIO_FILE is a JSON list of {"playerId", "context", "outcome"}
    objects; "outcome" needs at least actualPoints and accuracy.
    """
    with open(scenario_file) as f:
        scenarios = _load_json(f.read(), scenario_file)
    if not isinstance(scenarios, list):
        raise click.ClickException("Scenario file must contain a JSON list")

    engine = build_engine(seed)
    rows: List[Dict[str, Any]] = []

    for index, scenario in enumerate(scenarios, 1):
        if not isinstance(scenario, dict):
            raise click.ClickException(f"Scenario {index}: expected a JSON object")
        player =str(scenario.get("playerId", f"player_{index}"))
        result = engine.process_decision(player, scenario.get("context") or {})
        decision = result.recommendation

        outcome_data = scenario.get("outcome")
        if not outcome_data:
            rows.append({"player": player, "action": decision.action, "reward": None, "context": decision.context_hash})
            continue

        try:
            outcome = DecisionOutcome.from_dict({**outcome_data, "decisionId": decision.decision_id})
        except (TypeError, ValueError) as e:
            raise click.ClickException(f"Scenario {index}: invalid outcome ({e})")

        learned = engine.process_outcome(decision, outcome)
        rows.append({
            "player": player,
            "action": decision.action,
            "reward": learned.reward,
            "context": decision.context_hash,
        })

    engine.run_learning_cycle()

    table = Table(title=f"Replayed {len(scenarios)} Scenarios", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Player", style="cyan")
    table.add_column("Context")
    table.add_column("Action")
    table.add_column("Reward", justify="right")
    for index, row in enumerate(rows, 1):
        reward = row["reward"]
        reward_str = "-" if reward is None else f"[{'green' if reward > 0 else 'red'}]{reward:+.2f}[/]"
        table.add_row(str(index), row["player"], row["context"], row["action"], reward_str)
    console.print(table)

    _print_performance(engine)

    if csv_path:
        engine.episodes.to_frame().to_csv(csv_path, index=False)
        console.print(f"[green]Episode log written to {csv_path}[/]")


def _print_performance(engine: DecisionEngine) -> None:
    perf = engine.get_system_performance()
    accuracy = f"{perf.overall_accuracy:.1%}" if perf.overall_accuracy is not None else "n/a"
    velocity = f"{perf.learning_velocity:+.3f}" if perf.learning_velocity is not None else "n/a"

    console.print(Panel(
        f"[bold]Overall accuracy:[/] {accuracy}\n"
        f"[bold]Learning episodes:[/] {perf.learning_episodes}\n"
        f"[bold]Learning velocity:[/] {velocity}\n"
        f"[bold]Active policies:[/] {perf.active_policies}\n"
        f"[bold]Insights:[/] {perf.contextual_insights}",
        title="System Performance",
        border_style="cyan",
    ))

    insights = engine.get_insights()
    if not insights:
        return

    table = Table(title="Contextual Insights", box=box.ROUNDED)
    table.add_column("Context", style="cyan")
    table.add_column("Insight")
    table.add_column("Confidence", justify="right")
    table.add_column("Seen", justify="right")
    for insight in insights:
        table.add_row(
            insight.context_type,
            insight.insight,
            f"{insight.confidence:.0%}",
            str(insight.validation_count),
        )
    console.print(table)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
