"""Provenance graph traversal over a registry."""

from collections.abc import Iterable

from provenant.exceptions import ArtifactNotFoundError
from provenant.registry import Artifact, Registry

__all__ = ["find_dependents", "resolve_closure"]


def resolve_closure(registry: Registry, root_names: Iterable[str] | str) -> list[Artifact]:
    """Collect the roots and everything they were transitively derived from.

    Each artifact appears once however many paths lead to it. The result is
    in registration order, which is a topological order: every artifact comes
    after all of its inputs.

    Args:
        registry: Registry to traverse.
        root_names: Name or names to start from.

    Returns:
        The transitive dependency set including the roots.

    Raises:
        ArtifactNotFoundError: If a root is not registered, or an artifact
            lists an input that is not registered. ``referenced_by`` names
            the artifact holding the dangling edge.
    """
    roots = [root_names] if isinstance(root_names, str) else list(root_names)
    seen: set[str] = set()
    stack: list[tuple[str, str | None]] = [(name, None) for name in reversed(roots)]

    while stack:
        name, parent = stack.pop()
        if name in seen:
            continue
        artifact = registry.artifacts.get(name)
        if artifact is None:
            if parent is None:
                msg = f"Bundle root not found in registry: {name}"
            else:
                msg = f"Artifact '{parent}' references unregistered input '{name}'"
            raise ArtifactNotFoundError(msg, name=name, referenced_by=parent)
        seen.add(name)
        stack.extend((input_name, name) for input_name in artifact.input_artifacts)

    return [artifact for name, artifact in registry.artifacts.items() if name in seen]


def find_dependents(
    registry: Registry,
    name: str,
    *,
    transitive: bool = False,
) -> list[Artifact]:
    """List the artifacts derived from ``name``.

    Args:
        registry: Registry to search.
        name: Artifact whose dependents to find.
        transitive: Also include dependents of dependents.

    Returns:
        Dependents in registration order.

    Raises:
        ArtifactNotFoundError: If ``name`` is not registered.
    """
    if name not in registry.artifacts:
        msg = f"Artifact not found: {name}"
        raise ArtifactNotFoundError(msg, name=name)

    targets = {name}
    dependents: list[Artifact] = []
    # Inputs precede their dependents, so one pass in registration order
    # reaches every transitive dependent.
    for artifact in registry.artifacts.values():
        if artifact.name == name:
            continue
        if targets.intersection(artifact.input_artifacts):
            dependents.append(artifact)
            if transitive:
                targets.add(artifact.name)
    return dependents
