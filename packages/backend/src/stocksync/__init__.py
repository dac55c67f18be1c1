"""StockSync — real-time inventory and billing for a small shop floor.

Staff terminals and the owner terminal share one inventory and one bill
log. Every committed change is broadcast over Socket.IO so each terminal
reconciles its local copy without a page reload.
"""

__version__ = "0.1.0"
