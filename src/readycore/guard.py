"""
Precondition Guard — detect stale state before mutating a shared namespace.

Before anything is applied, the names of resources that already exist are
compared with the naming scheme of the current configuration.  A name
outside the expected prefix is evidence of a run with a different
configuration (for example another ``CAPZ_USER``) that was never cleaned
up; the caller must refuse to proceed until it is removed by hand.

Usage::

    from readycore.guard import ensure_no_conflicts

    ensure_no_conflicts(
        config.cluster_name_prefix,
        lambda: kubectl.list_names("cluster", namespace),
        namespace=namespace,
    )
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import yaml

from readycore.errors import ConflictDetectedError
from readycore.telemetry import add_span_event

logger = logging.getLogger(__name__)

_RULE = "━" * 78

DEFAULT_FULL_CLEANUP = "make clean"

CLUSTER_API_GROUP = "cluster.x-k8s.io/"

_DOCUMENT_SEPARATOR = re.compile(r"^---[ \t]*$", re.MULTILINE)


def check_for_conflicts(
    expected_prefix: str,
    discover: Callable[[], Sequence[str]],
) -> list[str]:
    """Return discovered names that do not start with ``expected_prefix``.

    A failing ``discover()`` means the queried system is not provisioned
    yet (for example the CRD is not installed), which is reported as no
    conflicts.
    """
    try:
        names = list(discover())
    except Exception as e:
        logger.info("Resource discovery unavailable, assuming no conflicts: %s", e)
        return []

    conflicts = [name for name in names if not name.startswith(expected_prefix)]
    for name in conflicts:
        add_span_event(
            "readiness.guard.conflict",
            {"guard.expected_prefix": expected_prefix, "guard.name": name},
        )
    if conflicts:
        logger.warning(
            "Found %d resource(s) not matching prefix %r: %s",
            len(conflicts),
            expected_prefix,
            ", ".join(conflicts),
        )
    return conflicts


def format_conflict_error(
    conflicts: Sequence[str],
    expected_prefix: str,
    namespace: str,
    kind: str = "cluster",
    full_cleanup: Optional[str] = DEFAULT_FULL_CLEANUP,
) -> str:
    """Explain the conflict and how to remove the stale resources.

    ``full_cleanup`` is the command offered for tearing down everything the
    workflow created; pass ``None`` to leave it out.
    """
    lines = [
        "",
        _RULE,
        "❌ EXISTING CLUSTER RESOURCES DETECTED",
        _RULE,
        "",
        "Found existing resources that don't match current configuration:",
        "",
    ]
    lines += [f"  • {name}" for name in conflicts]
    lines += [
        "",
        f"Current config expects names starting with: {expected_prefix}",
        "",
        "This typically happens when CAPZ_USER was changed without cleaning up",
        "the previous cluster resources. Deploying new clusters alongside old ones",
        "can cause conflicts and unexpected behavior.",
        "",
        "TO CLEAN UP:",
        "",
    ]
    if len(conflicts) == 1:
        lines.append(f"  kubectl delete {kind} {conflicts[0]} -n {namespace}")
    else:
        lines += [
            "  # Delete specific resource:",
            f"  kubectl delete {kind} {conflicts[0]} -n {namespace}",
            "",
            "  # Or delete all in namespace:",
            f"  kubectl delete {kind} --all -n {namespace}",
        ]
    if full_cleanup:
        lines += ["", "  # Or run the complete cleanup:", f"  {full_cleanup}"]
    lines += ["", "After cleanup, re-run.", _RULE]
    return "\n".join(lines)


def ensure_no_conflicts(
    expected_prefix: str,
    discover: Callable[[], Sequence[str]],
    namespace: str,
    kind: str = "cluster",
) -> None:
    """Raise ``ConflictDetectedError`` when stale resources exist."""
    conflicts = check_for_conflicts(expected_prefix, discover)
    if conflicts:
        raise ConflictDetectedError(
            conflicts,
            expected_prefix,
            format_conflict_error(conflicts, expected_prefix, namespace, kind),
        )


# ---------------------------------------------------------------------------
# Generated manifest check
# ---------------------------------------------------------------------------


def extract_cluster_name(manifest_path: Union[str, Path]) -> str:
    """Return ``metadata.name`` of the Cluster API ``Cluster`` in a manifest.

    Documents are parsed one at a time so that a malformed document does
    not hide a valid Cluster further down.  Only ``kind: Cluster`` with an
    ``apiVersion`` in the ``cluster.x-k8s.io`` group counts.

    Raises:
        OSError: The file cannot be read.
        ValueError: No Cluster document with a name was found.
    """
    path = Path(manifest_path)
    text = path.read_text(encoding="utf-8")

    for index, chunk in enumerate(_DOCUMENT_SEPARATOR.split(text)):
        if not chunk.strip():
            continue
        try:
            doc = yaml.safe_load(chunk)
        except yaml.YAMLError as e:
            logger.debug("Skipping unparsable document %d in %s: %s", index, path, e)
            continue
        if not isinstance(doc, dict) or doc.get("kind") != "Cluster":
            continue
        if not str(doc.get("apiVersion", "")).startswith(CLUSTER_API_GROUP):
            continue
        metadata = doc.get("metadata")
        name = metadata.get("name") if isinstance(metadata, dict) else None
        if name:
            return str(name)
    raise ValueError(f"no Cluster resource with metadata.name in {path}")


def manifest_matches_prefix(
    manifest_path: Union[str, Path],
    expected_prefix: str,
) -> tuple[bool, Optional[str]]:
    """Compare the cluster name in an existing manifest with the current prefix.

    Returns:
        ``(matches, existing_name)``; ``(False, None)`` when the manifest is
        missing or unreadable, meaning it has to be regenerated.
    """
    try:
        name = extract_cluster_name(manifest_path)
    except (OSError, ValueError) as e:
        logger.info("Could not read cluster name from %s: %s", manifest_path, e)
        return False, None
    return name == expected_prefix, name
