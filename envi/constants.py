# Blob sentinels
BLOB_START = "__envi_start__"
BLOB_END = "__envi_end__"

REDACTED_PLACEHOLDER = "__envi_redacted__"

# Store document
STORE_VERSION = 1
STORE_VERSION_KEY = "__envi_version"
STORE_SUFFIX = ".json"

# Synthetic key prefixes for the mapping form of an env file
LINE_PREFIX = "__l_"
INLINE_PREFIX = "__i_"
LEGACY_COMMENT_PREFIX = "__c_"
SYNTHETIC_PREFIXES = (LINE_PREFIX, INLINE_PREFIX, LEGACY_COMMENT_PREFIX)

# Envelope layout: salt || iv || tag || ciphertext
SALT_SIZE = 32
IV_SIZE = 16
TAG_SIZE = 16
KEY_SIZE = 32

# Directories and files
ENVI_HOME_ENV = "ENVI_HOME"
DEFAULT_ENVI_HOME = "~/.envi"
STORE_DIRNAME = "store"
CONFIG_FILENAME = "config.json"

VCS_MARKERS = (".git", ".jj", ".hg", ".svn")
IGNORED_DIRS = ("node_modules", ".git")

DEFAULT_REDACTED_VARIABLES = ["GITHUB_PAT"]

# Manifest files checked for a package name / shared secret, in priority order
DEFAULT_MANIFEST_FILES = [
    "package.json",
    "Cargo.toml",
    "go.mod",
    "pyproject.toml",
    "composer.json",
    "pubspec.yaml",
    "settings.gradle.kts",
    "settings.gradle",
    "pom.xml",
]
