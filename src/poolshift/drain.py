"""Cordon and drain every node matching a `key=value` label selector."""

from collections.abc import Callable

from rich.table import Table

from .backends.base import ClusterBackend
from .errors import ConfirmationDeclined, NodeOperationError, PoolshiftError, UsageError
from .logger import console, logger
from .schemas.cluster import NodeInfo

DRAIN_PROMPT = "Proceed to drain all? (Y/N) "


def parse_selector(label: str) -> tuple[str, str]:
    key, sep, value = label.partition("=")
    if not sep or not key or not value or "=" in value:
        raise UsageError(f"Label must be of the form key=value, got '{label}'")
    return key, value


def _show_nodes(nodes: list[NodeInfo], title: str) -> None:
    table = Table(title=title)
    table.add_column("Node", style="cyan")
    table.add_column("Kubelet")
    table.add_column("Schedulable")
    for node in nodes:
        table.add_row(
            node.name,
            node.kubelet_version,
            "[yellow]no[/yellow]" if node.unschedulable else "yes",
        )
    console.print(table)


def _ask(prompt: str) -> str:
    try:
        return console.input(prompt)
    except EOFError:
        # No terminal to answer on; treat as a refusal
        return ""


def _for_each_node(
    nodes: list[NodeInfo], verb: str, operation: Callable[[str], None]
) -> list[str]:
    """
    Applies `operation` to every node; one node failing does not stop the
    others. Raises NodeOperationError afterwards if any node failed.
    """
    done = []
    failures = {}
    for node in nodes:
        try:
            operation(node.name)
        except PoolshiftError as e:
            logger.error(f"[red]✗[/red] Failed to {verb} node/{node.name}: {e}")
            failures[node.name] = str(e)
            continue
        done.append(node.name)

    if failures:
        raise NodeOperationError(verb, failures)
    return done


def cordon_by_label(backend: ClusterBackend, label: str) -> list[str]:
    """Marks all matching nodes unschedulable. Returns the cordoned node names."""
    parse_selector(label)
    nodes = backend.list_nodes(label)
    if not nodes:
        logger.info(f"No nodes match {label}; nothing to cordon")
        return []

    logger.info(f"Cordoning {len(nodes)} node(s) labelled {label}")
    return _for_each_node(nodes, "cordon", backend.cordon_node)


def drain_by_label(
    backend: ClusterBackend,
    label: str,
    disable_prompts: bool,
    ask: Callable[[str], str] | None = None,
) -> list[str]:
    """
    Drains all matching nodes. Unless prompts are disabled the operator must
    answer y/Y first; anything else raises ConfirmationDeclined before any
    node is touched.
    """
    parse_selector(label)
    nodes = backend.list_nodes(label)
    if not nodes:
        logger.info(f"No nodes match {label}; nothing to drain")
        return []

    _show_nodes(nodes, f"Found nodes to drain ({len(nodes)})")

    if not disable_prompts:
        answer = (ask or _ask)(DRAIN_PROMPT).strip()
        if answer not in ("y", "Y"):
            console.print("[yellow]Aborted.[/yellow]")
            raise ConfirmationDeclined(f"Drain of nodes labelled {label} not confirmed")

    return _for_each_node(nodes, "drain", backend.drain_node)
