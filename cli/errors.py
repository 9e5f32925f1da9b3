class ProvisioningError(Exception):
    pass


class UnknownDistribution(ProvisioningError):
    pass


class NetworkError(ProvisioningError):
    pass


class IndexUnavailable(ProvisioningError):
    pass


class UnsupportedFormat(ProvisioningError):
    pass


class FilesystemError(ProvisioningError):
    pass
