"""
Services package for Reports module

- ledger: pure aggregation of movements and invoices
- snapshot: cached full read shared by every read view
- financial: summary and statement built on top of the snapshot
"""
