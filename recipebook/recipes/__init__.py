"""
Recipe query and mutation core.

Responsibilities:
- Validate raw listing parameters into a ``RecipeFilter`` (``filters``).
- Compose ownership, category, difficulty and title predicates into one
  paginated query (``query``).
- Create, replace and delete recipes with their ingredients, steps and
  category links in a single unit of work (``mutations``).
- Project stored recipes into detail and summary responses (``projection``).
"""
