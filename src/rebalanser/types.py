"""Common type definitions for the rebalanser library."""

# Opaque identity of a client, stable for its coordination session
ClientId = str

# Identifier of a single rebalanced resource
ResourceId = str

# Coordination-service node path
NodePath = str

# Node data version assigned by the coordination service
Version = int

# Rank encoded in a client's sequential node name
ClientNumber = int
