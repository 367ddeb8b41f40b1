from __future__ import annotations


class CrashAuditError(Exception):
    """Base exception class for all crash-audit errors.

    This is the root of the crash-audit exception hierarchy. Catching it at the
    CLI boundary handles every expected failure while letting system
    exceptions propagate naturally.

    Attributes:
        message: Human-readable error message describing what went wrong.
        stage: Pipeline stage the error belongs to (input, scan, fetch,
            cache, reconcile). Used to build the single fatal error line.

    Example:
        ```python
        try:
            report = await run_audit(options, cache=cache, client=client)
        except CrashAuditError as e:
            click.echo(f"Error: {e.stage} failed: {e.message}", err=True)
            sys.exit(2)
        ```
    """

    stage: str = "reconcile"

    def __init__(self, message: str) -> None:
        """Initialize the CrashAuditError.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(message)
