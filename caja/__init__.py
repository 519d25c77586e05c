"""Caja (cash register) application for the clinic backend.

This package owns the per-patient debt and deposit ledgers, the
allocation engine that moves money between them and the cash-cut gate
that blocks new charges until a pending cut is settled.
"""
