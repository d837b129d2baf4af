"""Application layer: stateful import session and the flow orchestrator on top of it."""
