"""Income-statement reconciliation across platform fee taxonomies."""
