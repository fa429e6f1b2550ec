import io, logging, uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional
from minio import Minio
from minio.deleteobjects import DeleteObject
from shop.core.config import settings
from shop.core.errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

MIME_TYPES = {'jpg': 'image/jpeg', 'jpeg': 'image/jpeg', 'png': 'image/png', 'webp': 'image/webp', 'gif': 'image/gif'}

@dataclass
class ImageFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        return self.filename.rsplit('.', 1)[-1].lower() if '.' in self.filename else ''

def _endpoint() -> str:
    return settings.S3_ENDPOINT.replace('http://','').replace('https://','')

def _client() -> Minio:
    return Minio(endpoint=_endpoint(), access_key=settings.S3_ACCESS_KEY, secret_key=settings.S3_SECRET_KEY, secure=settings.S3_SECURE)

class MediaHost:
    """Product images on the S3-compatible object store.

    Uploads must succeed or raise; deletes are best-effort and only ever log.
    """

    def __init__(self, client: Optional[Minio] = None, bucket: Optional[str] = None):
        self.client = client or _client()
        self.bucket = bucket or settings.S3_BUCKET
        scheme = 'https' if settings.S3_SECURE else 'http'
        self.base_url = f"{scheme}://{_endpoint()}/{self.bucket}/"

    def ensure_bucket(self):
        if not self.client.bucket_exists(bucket_name=self.bucket):
            self.client.make_bucket(bucket_name=self.bucket)

    def validate(self, f: ImageFile):
        if len(f.data) > settings.UPLOAD_MAX_BYTES:
            raise ValidationError(f"File size should not exceed {settings.UPLOAD_MAX_BYTES // (1024 * 1024)}MB")
        if f.extension not in settings.UPLOAD_ALLOWED_FORMATS:
            raise ValidationError(f"Invalid file format. Allowed formats: {', '.join(settings.UPLOAD_ALLOWED_FORMATS)}")
        if f.content_type != MIME_TYPES.get(f.extension):
            raise ValidationError('Invalid file type')

    def upload_many(self, files: Iterable[ImageFile], folder: Optional[str] = None) -> List[str]:
        files = list(files or [])
        if not files:
            return []
        if len(files) > settings.UPLOAD_MAX_FILES:
            raise ValidationError(f'Maximum {settings.UPLOAD_MAX_FILES} images allowed')
        for f in files:
            self.validate(f)

        folder = folder or settings.MEDIA_FOLDER
        urls: List[str] = []
        try:
            self.ensure_bucket()
            for f in files:
                key = f"{folder}/{uuid.uuid4().hex}.{f.extension}"
                self.client.put_object(bucket_name=self.bucket, object_name=key, data=io.BytesIO(f.data),
                                       length=len(f.data), content_type=f.content_type)
                urls.append(self.base_url + key)
        except Exception as exc:
            # don't leave half an upload behind
            self.delete_many(urls)
            raise InternalError(f'Failed to upload images: {exc}') from exc
        return urls

    def object_key(self, url: str) -> Optional[str]:
        if url and url.startswith(self.base_url):
            return url[len(self.base_url):]
        return None

    def delete_many(self, urls: Iterable[str]):
        keys = []
        for url in urls or []:
            key = self.object_key(url)
            if key:
                keys.append(key)
            else:
                logger.warning('Unable to resolve object key from url %s', url)
        if not keys:
            return
        try:
            errors = self.client.remove_objects(bucket_name=self.bucket,
                                                delete_object_list=[DeleteObject(name=k) for k in keys])
            # remove_objects is lazy, errors only surface while iterating
            for err in errors:
                logger.error('Failed to delete image %s: %s', err.name, err.message)
        except Exception:
            logger.exception('Failed to delete images from media host')
