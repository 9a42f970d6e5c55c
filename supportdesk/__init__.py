"""Support desk: ticket filing, staff handling and polling synchronization."""
