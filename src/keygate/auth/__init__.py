"""Authentication building blocks.

Learn: Three pieces, no web framework in the first two:
1. password: argon2id hashing + verification
2. api_keys: opaque key minting
3. dependencies: the request gate: x-api-key header → account + origin
"""
