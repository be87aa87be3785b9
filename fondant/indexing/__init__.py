"""Indexing and search core: header normalization, record materialization,
identifier index, full-text index and the linear field scanner."""
