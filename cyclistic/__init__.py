"""
Cyclistic Bikeshare Case Study
------------------------------
How do annual members and casual riders use the bikes differently?
This package answers that from twelve months of public trip records.

Module Hierarchy:
- `ingest`: Downloads monthly trip archives and stacks the CSVs into DuckDB.
- `features`: Cleans the stacked trips and computes grouped aggregates.
- `exploration`: Charts and the narrative summary built from the aggregates.
- `utils`: Database connectivity and logging setup.

Pipeline:
1. Load (all monthly files → one raw table)
2. Clean (bounds filter, ride length, same-station flag, calendar fields)
3. Aggregate (counts, shares, mean ride length per rider category)
4. Report (charts + printed summary)
"""
from cyclistic.errors import PipelineError

__all__ = ["PipelineError"]
