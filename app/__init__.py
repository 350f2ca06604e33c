"""Service bootstrap: configuration, command line and the coprocessor main loop."""
