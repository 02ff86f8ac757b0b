# Copyright (c) 2010-2012 OpenStack, LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or
# implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import mimetypes
import os
from urllib.parse import quote

from openstackstorage import consts
from openstackstorage.exceptions import (
    CDNNotEnabled, InvalidMetaName, InvalidMetaValue, InvalidObjectName,
    NoSuchObject, ResponseError)
from openstackstorage.utils import metadata_from_headers

DEFAULT_CONTENT_TYPE = 'application/octet-stream'
DISK_BUFFER_SIZE = 65536


class StorageObject:
    """
    An object in a :class:`~openstackstorage.container.Container`.

    Built from a listing record, an instance does no network activity.
    Built from a name, it loads the attributes of the existing object
    with a ``HEAD``; with ``force_exists`` set, a missing object raises
    :class:`~openstackstorage.exceptions.NoSuchObject`.

    ``metadata`` and ``headers`` may be edited freely and are sent by the
    next :meth:`write` or :meth:`sync_metadata`.
    """

    def __init__(self, container, name=None, force_exists=False,
                 record=None):
        self.container = container
        self.name = name
        self.content_type = None
        self.size = None
        self.last_modified = None
        self.etag = None
        self.metadata = {}
        self.headers = {}
        self.manifest = None

        if record:
            self.name = record['name']
            self.content_type = record.get('content_type')
            self.size = record.get('bytes')
            self.last_modified = record.get('last_modified')
            self.etag = record.get('hash')
        elif not self._initialize() and force_exists:
            raise NoSuchObject(name)

    def __repr__(self):
        return '<StorageObject %r in %r>' % (self.name, self.container.name)

    @property
    def connection(self):
        return self.container.connection

    @staticmethod
    def check_name(name):
        """
        :raises InvalidObjectName: the name is empty or longer than 1024
                                   bytes once UTF-8 encoded
        """
        if not name or \
                len(name.encode('utf-8')) > consts.object_name_limit:
            raise InvalidObjectName(name)

    def _path(self):
        self.check_name(self.name)
        return [self.container.name, self.name]

    def _initialize(self):
        if not self.name:
            return False
        try:
            resp = self.connection.make_request('HEAD', self._path())
        except ResponseError as err:
            if err.http_status == 404:
                return False
            raise

        self.manifest = resp.headers.get('x-object-manifest')
        self.content_type = resp.headers.get('content-type')
        self.etag = resp.headers.get('etag')
        self.size = int(resp.headers.get('content-length', 0))
        self.last_modified = resp.headers.get('last-modified')
        self.metadata = metadata_from_headers(resp.headers,
                                              consts.OBJECT_META_PREFIX)
        return True

    def _new_headers(self):
        headers = {
            'Content-Length': '0' if self.size is None else str(self.size),
            'Content-Type': self.content_type or DEFAULT_CONTENT_TYPE,
        }
        if self.manifest is not None:
            headers['X-Object-Manifest'] = self.manifest
        if self.etag is not None:
            headers['ETag'] = self.etag

        for key, value in self.metadata.items():
            if len(key) > consts.meta_name_limit:
                raise InvalidMetaName(key)
            if len(str(value)) > consts.meta_value_limit:
                raise InvalidMetaValue(value)
            headers['X-Object-Meta-%s' % key] = value

        merged = dict(self.headers)
        merged.update(headers)
        return merged

    def read(self, size=-1, offset=0, headers=None, buffer=None):
        """
        Read the content of the object.

        :param size: number of bytes to read; the whole object when not
                     positive
        :param offset: first byte to read
        :param headers: extra request headers
        :param buffer: file-like object the content is written to instead
                       of being returned
        :returns: the content as bytes, or None when buffer is given
        """
        headers = dict(headers or {})
        if size > 0:
            headers['Range'] = 'bytes=%d-%d' % (offset, offset + size - 1)
        elif offset > 0:
            headers['Range'] = 'bytes=%d-' % offset

        resp = self.connection.make_request(
            'GET', self._path(), hdrs=headers, stream=buffer is not None)
        if buffer is None:
            return resp.content
        try:
            for chunk in resp.iter_content(DISK_BUFFER_SIZE):
                buffer.write(chunk)
        finally:
            resp.close()

    def stream(self, chunk_size=8192):
        """Return an iterator over the content of the object."""
        resp = self.connection.make_request('GET', self._path(), stream=True)
        try:
            for chunk in resp.iter_content(chunk_size):
                yield chunk
        finally:
            resp.close()

    def save_to_filename(self, filename):
        with open(filename, 'wb') as fp:
            self.read(buffer=fp)

    def write(self, data, content_type=None):
        """
        Write data to the object, replacing its content.

        :param data: bytes, str, a file-like object opened in binary mode,
                     or None for an empty object. File-like objects are
                     streamed from their current position.
        :param content_type: defaults to the current content type, then to
                             a guess from the file name, then to
                             ``application/octet-stream``
        :raises TypeError: data is of none of the accepted types
        """
        self.check_name(self.name)
        if data is None:
            data = b''
        if isinstance(data, str):
            data = data.encode('utf-8')

        if isinstance(data, bytes):
            size = len(data)
        elif hasattr(data, 'read'):
            size = _remaining_size(data)
            if content_type is None and self.content_type is None:
                content_type = _guess_type(getattr(data, 'name', None))
        else:
            raise TypeError('cannot write %s to an object'
                            % type(data).__name__)

        if content_type is not None:
            self.content_type = content_type
        self.size = size

        headers = self._new_headers()
        headers.pop('ETag', None)
        if size is None:
            headers.pop('Content-Length')

        resp = self.connection.make_request('PUT', self._path(), data=data,
                                            hdrs=headers)
        self.etag = resp.headers.get('etag')
        self.container.clear_cache()

    def load_from_filename(self, filename):
        with open(filename, 'rb') as fp:
            self.write(fp)

    def sync_metadata(self):
        """
        Send the current metadata and headers to the object.

        :raises ResponseError: the service did not answer 202
        """
        self.check_name(self.name)
        if not (self.metadata or self.headers):
            return
        headers = self._new_headers()
        headers['Content-Length'] = '0'
        resp = self.connection.make_request('POST', self._path(),
                                            hdrs=headers)
        if resp.status_code != 202:
            raise ResponseError.from_response(resp)

    def sync_manifest(self):
        """
        Turn the object into a manifest of the segments matching the
        ``manifest`` prefix.
        """
        self.check_name(self.name)
        if not self.manifest:
            return
        headers = self._new_headers()
        headers.pop('ETag', None)
        headers['Content-Length'] = '0'
        self.connection.make_request('PUT', self._path(), hdrs=headers)
        self.container.clear_cache()

    def copy_from(self, container_name, name):
        """
        Server-side copy of another object into this one.

        :param container_name: container of the source object
        :param name: name of the source object
        """
        self.check_name(name)
        source = '/%s/%s' % (quote(container_name), quote(name))
        resp = self.connection.make_request(
            'PUT', self._path(),
            hdrs={'X-Copy-From': source, 'Content-Length': '0'})
        self.etag = resp.headers.get('etag')
        self.container.clear_cache()

    def _public(self, container_uri):
        return '%s/%s' % (container_uri.rstrip('/'), quote(self.name))

    def public_uri(self):
        return self._public(self.container.public_uri())

    def public_ssl_uri(self):
        return self._public(self.container.public_ssl_uri())

    def public_streaming_uri(self):
        return self._public(self.container.public_streaming_uri())

    def purge_from_cdn(self, email=None):
        """
        Purge this object from the CDN edge caches.

        :param email: address(es), comma separated, notified when the purge
                      completes
        """
        if not self.connection.cdn_enabled():
            raise CDNNotEnabled()
        headers = {}
        if email is not None:
            headers['X-Purge-Email'] = email
        self.connection.make_cdn_request('DELETE', self._path(),
                                         hdrs=headers)


def _remaining_size(fp):
    try:
        pos = fp.tell()
        fp.seek(0, os.SEEK_END)
        end = fp.tell()
        fp.seek(pos)
    except (AttributeError, OSError):
        return None
    return end - pos


def _guess_type(filename):
    if not isinstance(filename, str):
        return None
    return mimetypes.guess_type(filename)[0]
