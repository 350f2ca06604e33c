"""Camera, NetworkTables and logging helpers shared by the coprocessor."""
