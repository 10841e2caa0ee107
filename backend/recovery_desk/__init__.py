"""Recovery desk: RRC allocation and balance reconciliation backend."""
