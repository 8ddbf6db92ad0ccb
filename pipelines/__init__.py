"""
Pipeline definitions for the placement portal.

Pipelines run the batch workflows from the command line:
1. Parse - Read student rows from CSV
2. Import - Append validated rows in bounded batches
3. Distribute - Send each imported student to eligible companies
"""
