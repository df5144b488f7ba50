"""Asset library domain.

Upload workflow for project collections: resolve the owning project and
collection, negotiate a signed upload URL, record file metadata once the
client has pushed the bytes, and rebuild the collection view with fresh
signed read URLs.
"""
