"""
Infrastructure: configuration, logging and concrete collaborators
(websocket transport, HTTP authorization gate).
"""
