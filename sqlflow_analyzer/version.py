"""Version information."""

__version__ = "1.0.0"
__version_info__ = (1, 0, 0)

# Version history
CHANGELOG = """
# Changelog

## v1.0.0

**Flow graph compiler**

- SELECT pipelines: tables, joins, filters, aggregation, sort, limit
- CTEs and subqueries as container nodes
- UNION / INTERSECT / EXCEPT
- INSERT, UPDATE, DELETE, MERGE, CREATE TABLE AS, CREATE VIEW
- Window function, aggregate and CASE details

**Analysis**

- Complexity score and classification
- Optimization hints
- Column lineage and column flows

**Layout**

- Hierarchical, force and radial layouts

**CLI**

- Colored output, JSON export, statistics tables
"""
