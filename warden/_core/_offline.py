from __future__ import annotations

from warden._core._headers import Headers
from warden._core.models import Response, ResponseMetadata
from warden._utils import make_async_iterator

OFFLINE_STATUS_CODE = 503

OFFLINE_HTML = """\
<html>
  <head>
    <title>ODEON &mdash; Offline</title>
    <style>
      body { font-family: system-ui; background: #fafaf8; color: #1a1a1a; padding: 40px 20px; text-align: center; }
      h1 { font-size: 28px; margin: 20px 0; }
      p { font-size: 14px; color: #808080; line-height: 1.6; }
      .icon { font-size: 60px; margin: 20px 0; }
    </style>
  </head>
  <body>
    <div class="icon">\U0001f50c</div>
    <h1>ODEON Offline</h1>
    <p>You're viewing cached data from your last session.</p>
    <p>Waiting for internet connection...</p>
    <p style="margin-top: 30px; font-size: 12px; color: #b0b0b0;">The app will auto-update when connected.</p>
  </body>
</html>"""


def create_offline_response() -> Response:
    """
    Builds the terminal fallback returned when neither the network nor the
    cache can satisfy a request.

    A fresh object is built on each call, so callers may consume its stream.
    It is never written to the cache.
    """
    body = OFFLINE_HTML.encode("utf-8")
    return Response(
        status_code=OFFLINE_STATUS_CODE,
        headers=Headers(
            {
                "Content-Type": "text/html",
                "Content-Length": str(len(body)),
            }
        ),
        stream=make_async_iterator([body]),
        metadata=ResponseMetadata(
            warden_from_cache=False,
            warden_stored=False,
            warden_offline=True,
        ),
    )
