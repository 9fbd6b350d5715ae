"""
Persistence — local object store for pins and photos (SQLAlchemy ORM)

- models.py: Location (pin) 1..n Photo (remote id, small URL, optional PNG blob)
- store.py:  PhotoStore (add/remove pins, attach/delete photos, save)
"""
