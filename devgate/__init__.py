"""devgate — HTTP gateway for smart-home devices.

Quickstart::

    from devgate.api import create_app
    from devgate.state import SharedState

    shared = SharedState.init(credential="secret", devices=devices,
                              sessions_file="sessions.json")
    app = create_app(shared)
"""

__version__ = "0.3.0"
