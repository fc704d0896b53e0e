"""Agricultural marketplace order fulfilment backend."""
