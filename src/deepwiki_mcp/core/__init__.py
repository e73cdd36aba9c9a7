"""Core building blocks: automation, transformation, wiki parsing and storage."""
