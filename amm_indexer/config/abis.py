ERC20_ABI = [
    { "name": "decimals", "outputs": [ { "type": "uint8" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "symbol", "outputs": [ { "type": "string" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "name", "outputs": [ { "type": "string" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "totalSupply", "outputs": [ { "type": "uint256" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "balanceOf", "outputs": [ { "type": "uint256" } ],
      "inputs": [ { "name": "account", "type": "address" } ],
      "stateMutability": "view", "type": "function"},
]

V2_PAIR_ABI = [
    { "name": "token0", "outputs": [ { "type": "address" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "token1", "outputs": [ { "type": "address" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "getReserves",
      "outputs": [
          { "name": "reserve0", "type": "uint112" },
          { "name": "reserve1", "type": "uint112" },
          { "name": "blockTimestampLast", "type": "uint32" },
      ],
      "inputs": [], "stateMutability": "view", "type": "function"},
]

V3_POOL_ABI = [
    { "name": "token0", "outputs": [ { "type": "address" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "token1", "outputs": [ { "type": "address" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "fee", "outputs": [ { "type": "uint24" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "liquidity", "outputs": [ { "type": "uint128" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "slot0",
      "outputs": [
          { "name": "sqrtPriceX96", "type": "uint160" },
          { "name": "tick", "type": "int24" },
          { "name": "observationIndex", "type": "uint16" },
          { "name": "observationCardinality", "type": "uint16" },
          { "name": "observationCardinalityNext", "type": "uint16" },
          { "name": "feeProtocol", "type": "uint8" },
          { "name": "unlocked", "type": "bool" },
      ],
      "inputs": [], "stateMutability": "view", "type": "function"},
]

# Doppler-style hook exposing its pool key and bonding-curve target
V4_HOOK_ABI = [
    { "name": "poolKey",
      "outputs": [
          { "name": "currency0", "type": "address" },
          { "name": "currency1", "type": "address" },
          { "name": "fee", "type": "uint24" },
          { "name": "tickSpacing", "type": "int24" },
          { "name": "hooks", "type": "address" },
      ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "maximumProceeds", "outputs": [ { "type": "uint256" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
]

V4_STATE_VIEW_ABI = [
    { "name": "getSlot0",
      "outputs": [
          { "name": "sqrtPriceX96", "type": "uint160" },
          { "name": "tick", "type": "int24" },
          { "name": "protocolFee", "type": "uint24" },
          { "name": "lpFee", "type": "uint24" },
      ],
      "inputs": [ { "name": "poolId", "type": "bytes32" } ],
      "stateMutability": "view", "type": "function"},
    { "name": "getLiquidity", "outputs": [ { "name": "liquidity", "type": "uint128" } ],
      "inputs": [ { "name": "poolId", "type": "bytes32" } ],
      "stateMutability": "view", "type": "function"},
]
