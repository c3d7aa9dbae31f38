# cloudcontrol/constants.py

HTTP_PORT = 2001

SIGNATURE_HEADER = "X-Signature"

ENDPOINT_POWEROFF = "/node/execute/poweroff"
ENDPOINT_HEALTH = "/node/health"

WEBADMIN_DASHBOARD = "/webadmin/"
WEBADMIN_POWEROFF_ALL = "/webadmin/execute/poweroff-all-and-self"

# Maximum allowed |receiver now - envelope CurrentTime|, exclusive.
FRESHNESS_WINDOW_SEC = 60

CLIENT_TIMEOUT_SEC = 5.0
SHUTDOWN_GRACE_SEC = 5

RSA_KEY_SIZE = 4096
RSA_PUBLIC_EXPONENT = 65537

CONFIG_FILE_NAME = "config.json"
AUTHORIZED_KEYS_DIR_NAME = "authorized_keys"
SELF_KEY_DIR_NAME = "self_key"
SELF_PRIV_KEY_NAME = "self.key"
SELF_PUB_KEY_NAME = "self.pub"

PEM_PRIVATE_KEY_TYPE = "RSA PRIVATE KEY"
PEM_PUBLIC_KEY_TYPE = "RSA PUBLIC KEY"

# A peer that dies while powering off answers with this in its error body.
TERMINATED_MARKER = "signal: terminated"

HEALTH_ONLINE = "online"
HEALTH_OFFLINE = "offline"
