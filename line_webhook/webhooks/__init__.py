"""LINE webhook inbound pipeline.

Each callback is signature-verified, decoded and dispatched synchronously,
then acknowledged with 200.
"""
