"""Hour aggregations over reconciled work logs."""
