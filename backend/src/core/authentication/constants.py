from src.common.enum import BaseEnum

DEVICE_TOKEN_PK_ABBREV = 'dvc'
LINKING_CODE_PK_ABBREV = 'lnk'

# Uppercase letters and digits minus the ones people misread (0/O, 1/I)
LINKING_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
LINKING_CODE_LENGTH = 6
# base64url secret length in random bytes
DEVICE_TOKEN_BYTES = 32

CLI_TOKEN_TYPE = 'cli'
# Snapshot source for submissions from the first party agent
CLAUDE_CODE_SOURCE = 'claude_code'


class CredentialKind(BaseEnum):
    CLI = 'cli'
    DEVICE = 'device'
