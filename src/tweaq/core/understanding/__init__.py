"""Request understanding: instruction parsing and intent resolution."""
