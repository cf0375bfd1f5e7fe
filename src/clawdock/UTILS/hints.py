"""
Operator-facing text printed between workflow phases.
"""
from typing import Sequence

from jinja2 import Template

AUTH_HINT_TEMPLATE = Template(
    "Run: echo $GITHUB_TOKEN | docker login {{ registry }} -u USERNAME --password-stdin"
)

BUILD_COMPLETE_TEMPLATE = Template("""
Build and push complete: {{ image }}
Run on VPS with: clawdock --run-only""")

ONBOARD_TEMPLATE = Template("""
==> Onboarding (interactive)
When prompted:
  - Gateway bind: {{ gateway_bind }}
  - Gateway auth: token
  - Gateway token: {{ token }}
  - Tailscale exposure: Off
  - Install Gateway daemon: No
""")

PROVIDERS_TEMPLATE = Template("""
==> Provider setup (optional)
WhatsApp (QR):
  {{ compose }} run --rm openclaw-cli dist/index.js providers login
Telegram (bot token):
  {{ compose }} run --rm openclaw-cli dist/index.js providers add --provider telegram --token <token>
Discord (bot token):
  {{ compose }} run --rm openclaw-cli dist/index.js providers add --provider discord --token <token>
Docs: https://docs.openclaw.ai/providers""")

COMPLETE_TEMPLATE = Template("""
Gateway running with host port mapping.
Access from tailnet devices via the host's tailnet IP.
Config: {{ config_dir }}
Workspace: {{ workspace_dir }}
Token: {{ token }}

Commands:
  {{ compose }} logs -f openclaw-gateway
  {{ compose }} exec openclaw-gateway dist/index.js health --token "{{ token }}"
""")


def compose_hint(compose_files: Sequence[str]) -> str:
    """
    The docker compose invocation an operator should copy, with every -f file.
    """
    return " ".join(["docker compose"] + [f"-f {path}" for path in compose_files])
