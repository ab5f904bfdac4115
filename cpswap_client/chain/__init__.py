"""Ledger access, account decoding and transaction building."""
