# Configuration for the NVR RPC client

# ==============================================================================
# DEVICE Configuration
# ==============================================================================

# Base URL of the recorder's web server (scheme + host, no trailing slash).
DEFAULT_BASE_URL = "http://192.168.1.108"

# Default account used by the command line tool.
DEFAULT_USERNAME = "admin"

# ==============================================================================
# HTTP Transport Configuration
# ==============================================================================

# Login / challenge handshakes.
RPC_LOGIN_ENDPOINT = "/RPC2_Login"

# Regular (plain and encrypted) calls.
RPC_ENDPOINT = "/RPC2"

# Encryption-info bootstrap. Decoded directly, not as the generic envelope.
OUTSIDE_CMD_ENDPOINT = "/OutsideCmd"

# CGI resource probed by the digest authenticator.
CGI_PROBE_PATH = "/cgi-bin/magicBox.cgi?action=getLanguageCaps"

USER_AGENT = "NVRClient/1.0"

# Applied to every request at the transport boundary.
HTTP_TIMEOUT = 10.0  # seconds

# ==============================================================================
# RPC Login Configuration
# ==============================================================================

LOGIN_CLIENT_TYPE = "Web3.0"
LOGIN_TYPE = "Direct"

# Used until the device reports its own value in the login result.
KEEPALIVE_INTERVAL = 60  # seconds
KEEPALIVE_TIMEOUT = 300  # seconds, sent as the keepAlive "timeout" param

# ==============================================================================
# ENCRYPTION Configuration
# ==============================================================================

# Static IV for the CBC profile. Must match the device byte for byte.
CBC_IV = bytes(16)

AES_BLOCK_SIZE = 16
