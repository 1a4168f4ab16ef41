"""Lingx: branchable translation catalogs with diff and merge."""
