"""
Stayfinder: short-term-rental listings near a street address.

Resolves a geographic search viewport for an address through a fixed tier
ladder, then fetches listing details with bounded concurrency and retry.
"""
