"""Anchor Ghost: map form fields, plan a note fill, apply it with undo."""
