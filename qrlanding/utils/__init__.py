from qrlanding.utils.hashing import client_ip, hash_ip

__all__ = ["hash_ip", "client_ip"]
