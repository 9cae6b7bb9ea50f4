"""Generate go-micro style client and server bindings from service schemas."""
