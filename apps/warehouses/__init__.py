"""Warehouses app package.

Warehouses are the bookable resource of the marketplace: each carries a
rate card, a storage capacity, booking terms and the operational and
verification status that decide whether farmers may book it.
"""
