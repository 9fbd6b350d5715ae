"""
Image resolution for Photo records

- cache.py: thread-safe in-memory ImageCache keyed by photo id
- fetch.py: ImageFetchService (cache -> persisted blob -> network, write-through)
"""
