"""HTML status page with the pairing QR code."""

import json
from html import escape

from wa_gateway.domain.status import AwaitingScan, Connected, ConnectionStatus, LoggedOut


def render_status_page(status: ConnectionStatus, uptime_seconds: float) -> str:
    """Render the landing page for the current connection status."""
    connected = isinstance(status, Connected)
    bot_number = escape(status.bot_id) if isinstance(status, Connected) else None
    qr_section = ""
    qr_script = ""
    if isinstance(status, AwaitingScan):
        qr_section = _QR_SECTION
        qr_script = (
            "QRCode.toCanvas(document.querySelector('#qrcode canvas'), "
            f"{_script_literal(status.qr_payload)}, {{ width: 300, margin: 2 }});"
        )
    elif isinstance(status, LoggedOut):
        qr_section = _LOGGED_OUT_SECTION
    return _PAGE_TEMPLATE.format(
        status_class="connected" if connected else "disconnected",
        status_label="Connected" if connected else "Disconnected",
        qr_section=qr_section,
        bot_number=bot_number or "Not connected",
        uptime=int(uptime_seconds),
        qr_script=qr_script,
    )


_QR_SECTION = """
      <div class="qr-section">
        <h3>Scan the QR code with WhatsApp</h3>
        <p>Open WhatsApp, go to Linked Devices and choose Link a Device.</p>
        <div id="qrcode"><canvas></canvas></div>
        <button onclick="window.location.reload()">Refresh QR</button>
      </div>
"""

_LOGGED_OUT_SECTION = """
      <div class="qr-section">
        <h3>Logged out</h3>
        <p>Delete the credentials directory and restart the service to pair again.</p>
      </div>
"""

_PAGE_TEMPLATE = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>WhatsApp Bot API</title>
    <style>
      body {{ font-family: ui-sans-serif, system-ui, sans-serif; margin: 2rem; }}
      .container {{ max-width: 600px; margin: 0 auto; }}
      .status {{ display: inline-block; padding: 0.4rem 1rem; border-radius: 1rem; }}
      .connected {{ background: #10b981; color: white; }}
      .disconnected {{ background: #ef4444; color: white; }}
      .info {{ background: #f3f4f6; padding: 1rem; border-radius: 0.5rem; }}
      .endpoint {{ background: #f9fafb; padding: 0.8rem; margin: 0.5rem 0; }}
      .qr-section {{ text-align: center; margin: 1rem 0; }}
      button {{ padding: 0.4rem 0.8rem; }}
    </style>
    <script src="https://cdn.jsdelivr.net/npm/qrcode@1.5.1/build/qrcode.min.js"></script>
  </head>
  <body>
    <div class="container">
      <h1>WhatsApp Bot API</h1>
      <div class="status {status_class}" id="status">{status_label}</div>
{qr_section}
      <div class="info">
        <p><strong>Server status:</strong> Online</p>
        <p><strong>Bot number:</strong> {bot_number}</p>
        <p><strong>Uptime:</strong> {uptime} seconds</p>
      </div>
      <h3>Available endpoints</h3>
      <div class="endpoint">
        <strong>POST /send-message</strong>
        <p>Send a text message to a WhatsApp number</p>
        <code>{{ "phone": "6281234567890", "message": "Hello" }}</code>
      </div>
      <div class="endpoint"><strong>GET /status</strong><p>Bot connection status</p></div>
      <div class="endpoint"><strong>GET /qr</strong><p>Current QR code, if any</p></div>
    </div>
    <script>
      {qr_script}
      setInterval(async () => {{
        const res = await fetch('/status');
        const data = await res.json();
        const statusEl = document.getElementById('status');
        if (data.status === 'connected') {{
          statusEl.className = 'status connected';
          statusEl.textContent = 'Connected';
          if (document.querySelector('.qr-section')) {{
            window.location.reload();
          }}
        }} else {{
          statusEl.className = 'status disconnected';
          statusEl.textContent = 'Disconnected';
        }}
      }}, 5000);
    </script>
  </body>
</html>
"""


def _script_literal(value: str) -> str:
    return json.dumps(value).replace("<", "\\u003c")
