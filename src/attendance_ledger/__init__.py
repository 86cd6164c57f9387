"""School attendance ledger package.

This package is organized by feature modules (attendance, notifications) with a
thin Flask controller layer over service and repository layers.
"""
