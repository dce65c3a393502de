class PreconditionViolation(ValueError):
    """Raised when a caller hands the engine input it cannot compute over.

    Covers window sizes below one, inverted ranges, unparseable dates,
    unknown statuses, negative session counts and duplicate record ids.
    The engine never coerces such input into a best-effort value.
    """
