"""Real-time infrastructure — Socket.IO hub + event protocol.

Learn: Events flow one way for data and one way for identity:
1. Services → BroadcastHub → every connected terminal (inventory, bills)
2. Terminal → hub `user:register` (advisory identity, diagnostics only)

The protocol module is shared with the terminal client so both ends
validate the same payload shapes.
"""
