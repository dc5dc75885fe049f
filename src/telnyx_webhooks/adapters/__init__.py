"""Transport adapters that feed deliveries into the core verifier."""
