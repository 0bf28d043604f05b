"""Bookings app package.

This app holds the booking engine: quote calculation, availability
checks, the booking status state machine with its payment and approval
sub-states, and the reconciliation service that repairs bookings whose
derived fields drifted from their source data. Concurrent writers are
kept apart by a warehouse row lock on creation and compare-and-swap on
the booking's version column for every transition.
"""
