"""
Thumbnail worker components.

Contains the queue consumer that derives thumbnails from uploaded images
and the Pillow rendering it relies on.
"""
