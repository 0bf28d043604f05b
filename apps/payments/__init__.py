"""Payments app package.

Holds the payment confirmation gateway the booking engine uses to open
provider orders, verify payment signatures and issue refunds.
"""
