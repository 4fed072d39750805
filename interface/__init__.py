"""
Interface package: communication protocols for the chess coach engine.

Modules:
    uci   Universal Chess Interface (UCI) protocol handler.
          Reads commands from stdin, writes responses to stdout.
          Run with: python -m interface.uci
"""
