"""kubewait: wait for asynchronously reconciled cluster resources to converge."""

__version__ = "0.1.0"
