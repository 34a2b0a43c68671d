"""Settings, logging, engines and the data context."""
