"""memtree: hierarchical dotted-path namespaces over a flat TTL key-value store."""
