from qrlanding.services.domain_service import DomainService
from qrlanding.services.qr_service import QRCodeService
from qrlanding.services.scan_service import ScanService
from qrlanding.services.storage import StorageClient

__all__ = [
    "DomainService",
    "QRCodeService",
    "ScanService",
    "StorageClient",
]
