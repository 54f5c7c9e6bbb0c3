import json
import os

_ABI_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, "abis"))

def _load_abi(name: str) -> list:
    path = os.path.join(_ABI_DIR, name)
    if not os.path.isfile(path):
        raise FileNotFoundError(f"ABI not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

def load_erc20_abi() -> list:
    # approve / allowance / balanceOf / decimals only
    return _load_abi("erc20_abi.json")

def load_router_abi() -> list:
    # UniswapV2-style router: getAmountsOut + swapExactTokensForTokens
    return _load_abi("router_abi.json")
