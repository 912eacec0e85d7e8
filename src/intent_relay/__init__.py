"""Intent relay: verifies signed payment intents and credits an internal ledger."""
