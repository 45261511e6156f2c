"""Domain documents packaged with the engine."""
