"""
TradeBoard - An infinite whiteboard for marking up trading charts.

This package contains the main application modules:
- core: Application core and wiring
- ui: User interface components
- editor: Board model, interaction tools, rendering and canvas widgets
- services: Application services (config, logging)
"""

__version__ = "0.1.0"
