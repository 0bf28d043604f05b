"""Notifications app package.

Delivers booking lifecycle notifications by email. Delivery is
fire-and-forget: failures are logged and never reach the booking flow.
"""
