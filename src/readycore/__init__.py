"""
readycore - Deployment readiness orchestration.

Drives a multi-phase cluster deployment to a verified ready state from
outside the cluster, using only command-line tools:

- Condition Poller: wait until a predicate holds, with progress lines
- Retry Engine: bounded retries with linear, capped backoff
- Validation Engine: aggregate critical and advisory checks
- Precondition Guard: refuse to run over stale resources

Example usage:
    from readycore import PollSpec, wait

    wait(PollSpec(
        predicate=kubectl.api_responsive,
        interval=5,
        timeout=120,
        label="API server",
    ))
"""

__version__ = "0.1.0"
__all__ = [
    "PollSpec",
    "wait",
    "RetrySpec",
    "RetryEngine",
    "validate_all",
    "ensure_no_conflicts",
    "load_config",
    "__version__",
]


# Lazy imports keep ``readycore --help`` fast
def __getattr__(name: str):
    if name in ("PollSpec", "wait"):
        from readycore import poller
        return getattr(poller, name)
    if name in ("RetrySpec", "RetryEngine"):
        from readycore.retry import RetryEngine, RetrySpec
        return RetryEngine if name == "RetryEngine" else RetrySpec
    if name == "validate_all":
        from readycore.validation import validate_all
        return validate_all
    if name == "ensure_no_conflicts":
        from readycore.guard import ensure_no_conflicts
        return ensure_no_conflicts
    if name == "load_config":
        from readycore.config import load_config
        return load_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
