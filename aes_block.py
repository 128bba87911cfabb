# aes_block
#
# Raw single-block AES, the block cipher EME is normally run with.
#
# SPDX Identifier: MIT

try:
    from Cryptodome.Cipher import AES
except ImportError:
    from Crypto.Cipher import AES

from eme import CipherBlock
from eme_errors import InvalidKeyLength


class AESCipherBlock(CipherBlock):
    "AES-128, AES-192 or AES-256 in raw, unpadded one-block mode"
    block_size = AES.block_size
    # a new ECB object is made for every block, nothing is shared
    thread_safe = True

    def __init__(self, key):
        if not key:
            raise InvalidKeyLength("must pass a valid key")
        if len(key) not in AES.key_size:
            raise InvalidKeyLength(f"invalid key length = {len(key)}")
        self.key = bytes(key)
        self.algo = f"aes{len(key) * 8}"

    def encrypt(self, block):
        return AES.new(self.key, AES.MODE_ECB).encrypt(block)

    def decrypt(self, block):
        return AES.new(self.key, AES.MODE_ECB).decrypt(block)

    def __repr__(self):
        return f"<AESCipherBlock {self.algo}>"
