"""
Flickr photo search for a pin

- api.py:   request parameters and response parsing (photos.search JSON)
- query.py: LocationPhotoQueryService (bbox -> one request -> Photo records)
"""
