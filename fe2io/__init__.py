"""fe2io - lightweight FE2 client.

Keeps a WebSocket session to the FE2 event server for one username and plays
a sound whenever that player dies.
"""

__version__ = "1.0.0"
