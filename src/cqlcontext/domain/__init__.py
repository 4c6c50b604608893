"""Domain layer: table registry, tracking, batching and the save orchestrator."""
