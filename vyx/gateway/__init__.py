"""JWT and JSON Schema validation for gateway requests."""