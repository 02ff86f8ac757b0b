# Copyright (c) 2010-2022 OpenStack, LLC.
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
"""
requests plumbing for the storage transport.

The storage service accepts UTF-8 in metadata header values, which
requests refuses to prepare, and every request must carry exactly the
headers the router built: no cookies, no .netrc credentials and no
session-level default headers.
"""

import requests
from requests.sessions import merge_hooks
from requests.structures import CaseInsensitiveDict


class StoragePreparedRequest(requests.PreparedRequest):

    def prepare_headers(self, headers):
        try:
            return super().prepare_headers(headers)
        except UnicodeError:
            # a UTF-8 encoded metadata value; send it as given
            self.headers = CaseInsensitiveDict(headers or {})


class StorageRequestsSession(requests.Session):
    """
    Session that prepares requests from their own headers only.
    """

    def __init__(self):
        super().__init__()
        self.headers = None

    def prepare_request(self, request):
        p = StoragePreparedRequest()
        p.prepare(
            method=request.method.upper(),
            url=request.url,
            files=request.files,
            data=request.data,
            json=request.json,
            headers=CaseInsensitiveDict(request.headers or {}),
            params=request.params,
            auth=None,
            cookies=None,
            hooks=merge_hooks(request.hooks, self.hooks),
        )
        return p
