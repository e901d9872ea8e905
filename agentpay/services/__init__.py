"""
Services.

Ledger access, history indexing and keeper execution.
"""
