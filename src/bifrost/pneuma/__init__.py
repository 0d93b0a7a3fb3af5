"""
Pneuma - On-chain interaction layer for Bifrost.

Resolves calls against runtime metadata, encodes and signs extrinsics, and
talks JSON-RPC to the node over one websocket session per call.

Uses websocket-client + scalecodec + httpx instead of a full Substrate SDK.
"""
