"""assetvault: asset storage pipeline and pending upload staging.

Committed assets are validated against a collection policy, placed on disk,
recorded in a SQLAlchemy record store, given derived variants and capped per
owner scope. Uploads without an owner yet are staged in a TTL-bounded pending
area guarded by possession tokens.
"""
