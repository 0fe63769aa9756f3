from qrlanding.database.repositories.client_repo import ClientRepository
from qrlanding.database.repositories.domain_repo import DomainRepository
from qrlanding.database.repositories.qr_repo import QRCodeRepository
from qrlanding.database.repositories.scan_repo import ScanRepository
from qrlanding.database.repositories.user_repo import UserRepository

__all__ = [
    "UserRepository",
    "ClientRepository",
    "DomainRepository",
    "QRCodeRepository",
    "ScanRepository",
]
