"""Internal constants shared across the library."""

DEFAULT_URI = "http://localhost:9933"
USER_AGENT = "remote-ext/1"

# ------------------------------------------------------------------
# JSON-RPC methods
# ------------------------------------------------------------------

METHOD_FINALIZED_HEAD = "chain_getFinalizedHead"
METHOD_CHAIN = "system_chain"
METHOD_GET_PAIRS = "state_getPairs"
METHOD_RUNTIME_VERSION = "state_getRuntimeVersion"

# ------------------------------------------------------------------
# Cache
# ------------------------------------------------------------------

CACHE_DIR = "."
CACHE_SUFFIX = ".bin"

#: Block hashes are always 32 bytes.
REFERENCE_LENGTH = 32

#: aiohttp read buffer; state_getPairs responses can run to hundreds of MB.
READ_BUFSIZE = 4 * 1024 * 1024
