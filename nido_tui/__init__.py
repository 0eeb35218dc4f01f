"""
Nido TUI - terminal control panel for a local nido VM fleet.

Architecture:
- dispatcher.py: routes events, owns the ApplicationState
- views/: one viewlet per tab plus shared widgets
- commands.py / scheduler.py: backend work off the UI thread
- providers.py: VMProvider protocol; nido_provider.py and demo_provider.py implement it
- app.py: Textual host that feeds events in and paints frames

Extensibility points:
1. New tabs: add a viewlet to views/, register it in the dispatcher
2. New backends: implement the VMProvider protocol
3. New backend work: add an intent, a command factory, and a result message
"""

__version__ = "0.1.0"
