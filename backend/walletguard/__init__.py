"""WalletGuard: authorization and write-validation policy service."""

__version__ = "1.0.0"
