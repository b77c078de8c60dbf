"""Pure state-machine rules, free of persistence."""
