"""
Category catalog.

Categories are a shared lookup table: seeded once, listed by name, and
referenced by recipes. Nothing in the recipe core creates or edits them.
"""
