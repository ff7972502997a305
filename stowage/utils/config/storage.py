import dataclasses

#-----------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class StorageConfig:
    """
    Connection parameters of one storage disk

    Fields unused by a driver are ignored by it:
    - key/secret: access key id and secret (object stores)
    - bucket: default bucket
    - endpoint: service host, with or without scheme
    - region: service region (e.g. oss-cn-hangzhou, us-east-1)
    - internal: use the provider's internal network endpoint
    - secure: build https URLs instead of http
    - root: base directory (local driver)
    - public_url: base URL used by get_url() when the service sits behind a proxy/CDN
    """

    driver      : str = "local"
    key         : str = ""
    secret      : str = ""
    bucket      : str = ""
    endpoint    : str = ""
    region      : str = ""
    internal    : bool = False
    secure      : bool = True
    root        : str = ""
    public_url  : str = ""

    #-----------------------------------------------------

    @property
    def protocol(self) -> str:
        return "https" if self.secure else "http"


    def with_bucket(self, bucket: str) -> "StorageConfig":
        return dataclasses.replace(self, bucket=bucket)


    def print(self):
        from .config import Config

        target = self.root if self.driver == "local" else f"{self.bucket}@{self.endpoint or self.region}"
        print(f"storage         : {self.driver}:{target} key={Config.to_masked_str(self.key)}")

#-----------------------------------------------------------------------------
