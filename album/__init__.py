"""
Album — headless presentation of a pin's photo collection

- pin_album.py: PinAlbum (load, new collection, selection/removal, lazy image display)
- service.py:   CLI that drives a PinAlbum end to end (python -m album.service)
"""
