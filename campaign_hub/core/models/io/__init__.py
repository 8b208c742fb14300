"""API I/O schemas (request and response models) grouped by resource."""
