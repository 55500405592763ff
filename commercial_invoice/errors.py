from __future__ import annotations


class InvoiceError(ValueError):
    """Source records cannot produce a commercial invoice; fix the data and retry."""


class InvoiceConsistencyError(RuntimeError):
    """Aggregated values violate an invariant. Indicates a bug, never bad input."""


class InvoiceAssetError(RuntimeError):
    """A logo/signature image required for rendering is missing."""
