"""
Relational storage gateway.

Responsibilities:
- Build the SQLAlchemy engine and session factory from ``AppConfig``.
- Declare the recipe, ingredient, step, category and user tables.
- Provide the ``unit_of_work`` boundary: commit together or roll back together.
- Create, reset and ping the schema. Category seeding lives in
  ``categories.catalog``.
"""
