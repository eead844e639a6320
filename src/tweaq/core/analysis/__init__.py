"""Impact analysis: styling idioms, structural cues, change scope."""
