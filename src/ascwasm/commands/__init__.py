"""Built-in CLI sub-commands registered by :func:`ascwasm.app.main`."""
