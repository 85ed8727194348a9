"""State layer.

Everything here is owned by the broker task: the reading cache, the rate
controller and the auxiliary context. None of it is thread-safe:
producers reach it only through the broker queue.
"""
