from web3.datastructures import AttributeDict
from hexbytes import HexBytes

def _clean(v):
    if isinstance(v, (bytes, bytearray, HexBytes)):
        return "0x" + bytes(v).hex()
    if isinstance(v, (AttributeDict, dict)):
        return {k: _clean(x) for k, x in dict(v).items()}
    return v

def sanitize_log(log):
    """Convert Web3 log to JSON-safe dict."""
    return {k: _clean(v) for k, v in dict(log).items()}
