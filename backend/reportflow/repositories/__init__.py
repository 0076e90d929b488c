"""
Repositories package — data-access layer.

Each repository file handles all DB operations for one domain entity.
Repositories do NOT handle HTTP concerns or business logic beyond
basic data integrity.

Convention:
    - One file per aggregate root (orders.py, users.py)
    - All functions accept `AsyncSession` as the first argument
    - Use `flush()` internally; the caller owns the transaction
      (`async with session.begin(): ...`)
"""
