"""
Utility functions for connection labels
"""
import random
import string


def generate_connection_id(length: int = 6) -> str:
    """Generate a short random label used to tell sockets apart in logs"""
    alphabet = string.ascii_lowercase + string.digits
    return "conn_" + "".join(random.choice(alphabet) for _ in range(length))
