"""Local file storage for patient attachments and supplier invoice scans."""
import logging
import os
import uuid

from flask import current_app, url_for
from werkzeug.utils import secure_filename

from dental_clinic.common.errors import StorageError

logger = logging.getLogger(__name__)


class LocalFileStorage:
    def __init__(self, root=None):
        self._root = root

    @property
    def root(self):
        return self._root or current_app.config['UPLOAD_FOLDER']

    def upload(self, folder: str, filename: str, data: bytes) -> tuple[str, str]:
        """Write ``data`` under ``folder`` and return ``(stored_name, url)``."""
        safe = secure_filename(filename or '') or 'file'
        stored_name = f"{uuid.uuid4().hex[:12]}_{safe}"
        target_dir = os.path.join(self.root, folder)
        try:
            os.makedirs(target_dir, exist_ok=True)
            with open(os.path.join(target_dir, stored_name), 'wb') as f:
                f.write(data)
        except OSError as e:
            logger.error('Upload of %s failed: %s', filename, e)
            raise StorageError('Could not store the uploaded file') from e
        url = url_for('files.serve', path=f'{folder}/{stored_name}')
        return stored_name, url

    def path_for(self, relative_path: str) -> str:
        full = os.path.abspath(os.path.join(self.root, relative_path))
        if not full.startswith(os.path.abspath(self.root) + os.sep):
            raise StorageError('Invalid file path')
        return full

    def delete(self, folder: str, stored_name: str):
        try:
            full = self.path_for(f'{folder}/{stored_name}')
            if os.path.exists(full):
                os.remove(full)
        except OSError as e:
            logger.error('Delete of %s/%s failed: %s', folder, stored_name, e)
            raise StorageError('Could not delete the stored file') from e
