"""PoolWatch: Raydium new-pool watcher and time-gated dispatcher."""

__version__ = "0.1.0"
