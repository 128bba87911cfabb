# eme
#
# ECB-Mix-ECB or Encrypt-Mix-Encrypt wide-block mode (Halevi-Rogaway, 2003)
# on top of any block cipher with a 16-byte block, usually AES.
#
# SPDX Identifier: MIT

import abc
import contextlib
import logging
import threading

from eme_errors import (
    EMEError,
    BufferLengthMismatch,
    InvalidBlockSize,
    InvalidMessageLength,
    InvalidTweakLength,
    UnderlyingCipherFailure,
)

log = logging.getLogger(__name__)

BLOCK_SIZE = 16
MAX_BLOCKS = 16 * 8

# Encrypt "inputData"
DIRECTION_ENCRYPT = 'enc'
# Decrypt "inputData"
DIRECTION_DECRYPT = 'dec'


class CipherBlock(abc.ABC):
    """A key-bound block cipher transforming exactly one block at a time.

    This is the calling convention of PyCryptodome cipher objects: an
    ``AES.new(key, AES.MODE_ECB)`` object can be passed anywhere a
    CipherBlock is expected. Subclasses that may be called from several
    threads at once set ``thread_safe``; otherwise EMECipher serializes
    calls against the instance.
    """
    block_size = BLOCK_SIZE
    thread_safe = False

    @abc.abstractmethod
    def encrypt(self, block):
        "Encrypts one block, returns the ciphertext block"

    @abc.abstractmethod
    def decrypt(self, block):
        "Decrypts one block, returns the plaintext block"


# multByTwo - GF multiplication as specified in the EME-32 draft
def multByTwo(s):
    if len(s) != BLOCK_SIZE:
        raise InvalidBlockSize(f"input must be 16 bytes long, is {len(s)}")
    res = bytearray(BLOCK_SIZE)
    res[0] = (s[0] * 2) & 0xFF  # force 8-bit
    if s[15] >= 128:  # carry out of the last byte wraps into the first
        res[0] ^= 135
    for j in range(1, BLOCK_SIZE):
        res[j] = (s[j] * 2) & 0xFF
        if s[j-1] >= 128:
            res[j] += 1
    return res


# xorBlocks - write b1 xor b2 into dst, which may be b1 or b2 itself
def xorBlocks(dst, b1, b2):
    if len(b1) != len(b2):
        raise BufferLengthMismatch(f"len(b1)={len(b1)} is not equal to len(b2)={len(b2)}")
    if len(dst) != len(b1):
        raise BufferLengthMismatch(f"len(dst)={len(dst)} is not equal to len(b1)={len(b1)}")
    for i in range(len(b1)):
        dst[i] = b1[i] ^ b2[i]


def _blockFunction(bc, direction):
    "Returns the one-block primitive of 'bc' for 'direction'"
    fu = bc.decrypt
    if direction == DIRECTION_ENCRYPT:
        fu = bc.encrypt

    def aesTransform(src):
        try:
            out = fu(bytes(src))
        except EMEError:
            raise
        except Exception as exc:
            log.warning("block cipher %s failed: %s", type(bc).__name__, exc)
            raise UnderlyingCipherFailure(f"block cipher failed: {exc}") from exc
        if out is None or len(out) != BLOCK_SIZE:
            raise UnderlyingCipherFailure("block cipher did not return a 16-byte block")
        return out

    return aesTransform


# tabulateL - calculate L_i for messages up to a length of m cipher blocks
def tabulateL(bc, m):
    # L0 = 2*AESenc(K; 0)
    Li = _blockFunction(bc, DIRECTION_ENCRYPT)(bytes(BLOCK_SIZE))
    LTable = []
    for i in range(m):
        # multByTwo allocates, so every entry is its own copy
        Li = multByTwo(Li)
        LTable.append(Li)
    return LTable


def transform(bc, tweak, inputData, direction=DIRECTION_DECRYPT):
    """Transform - EME-encrypt or EME-decrypt, according to "direction".

    The data in "inputData" is en- or decrypted with the block cipher "bc"
    under "tweak" (also known as IV).

    The tweak is used to randomize the encryption in the same way as an
    IV.  A use of this encryption mode envisioned by the authors of the
    algorithm was to encrypt each sector of a disk, with the tweak
    being the sector number.  If you encipher the same data with the
    same tweak you will get the same ciphertext.

    The result is returned in a freshly allocated bytearray of the same
    size as inputData; inputData itself is never written to.

    Limitations:
     * The block cipher must have block size 16 (usually AES).
     * The size of "tweak" must be 16
     * "inputData" must be a multiple of 16 bytes long, 1 to 128 blocks
    If any of these pre-conditions are not met, an EMEError is raised
    before the block cipher is called.
    """
    # In the paper, the tweak is just called "T" and the data "P" (input)
    # and "C" (output), whatever the direction.
    T = tweak
    P = inputData
    if bc.block_size != BLOCK_SIZE:
        raise InvalidBlockSize(f"Using a block size other than 16 is not implemented, got {bc.block_size}")
    if len(T) != BLOCK_SIZE:
        raise InvalidTweakLength(f"Tweak must be 16 bytes long, is {len(T)}")
    if len(P) % BLOCK_SIZE:
        raise InvalidMessageLength(f"Data P must be a multiple of 16 long, is {len(P)}")
    m = len(P) // BLOCK_SIZE
    if not m or m > MAX_BLOCKS:
        raise InvalidMessageLength(f"EME operates on 1 to {MAX_BLOCKS} block-cipher blocks, you passed {m}")
    if direction not in (DIRECTION_ENCRYPT, DIRECTION_DECRYPT):
        raise ValueError(f"unknown direction {direction!r}")
    log.debug("EME %s of %d blocks", direction, m)

    fu = _blockFunction(bc, direction)
    C = bytearray(len(P))
    LTable = tabulateL(bc, m)

    with memoryview(C) as CView:
        PPj = bytearray(BLOCK_SIZE)
        for j in range(m):
            # PPj = 2**(j-1)*L xor Pj
            xorBlocks(PPj, P[j*16:j*16+16], LTable[j])
            # PPPj = AESenc(K; PPj)
            CView[j*16:j*16+16] = fu(PPj)

        # MP = (xorSum PPPj) xor T
        MP = bytearray(BLOCK_SIZE)
        xorBlocks(MP, CView[:16], T)
        for j in range(1, m):
            xorBlocks(MP, MP, CView[j*16:j*16+16])

        # MC = AESenc(K; MP)
        MC = fu(MP)

        # M = MP xor MC
        M = bytearray(BLOCK_SIZE)
        xorBlocks(M, MP, MC)
        for j in range(1, m):
            M = multByTwo(M)
            # CCCj = 2**(j-1)*M xor PPPj
            Cj = CView[j*16:j*16+16]
            xorBlocks(Cj, Cj, M)

        # CCC1 = (xorSum CCCj) xor T xor MC
        CCC1 = bytearray(BLOCK_SIZE)
        xorBlocks(CCC1, MC, T)
        for j in range(1, m):
            xorBlocks(CCC1, CCC1, CView[j*16:j*16+16])
        CView[:16] = CCC1

        for j in range(m):
            Cj = CView[j*16:j*16+16]
            # CCj = AESenc(K; CCCj)
            Cj[:] = fu(Cj)
            # Cj = 2**(j-1)*L xor CCj
            xorBlocks(Cj, Cj, LTable[j])

    return C


class EMECipher:
    "ECB-Mix-ECB or Encrypt-Mix-Encrypt mode (Halevi-Rogaway, 2003)"
    def __init__(self, bc):
        if bc is None:
            raise ValueError("must pass a block cipher")
        if bc.block_size != BLOCK_SIZE:
            raise InvalidBlockSize(f"block cipher must have a block size of 16, has {bc.block_size}")
        self.bc = bc
        if getattr(bc, 'thread_safe', False):
            self._lock = contextlib.nullcontext()
        else:
            self._lock = threading.Lock()

    def encrypt(self, tweak, inputData):
        with self._lock:
            return transform(self.bc, tweak, inputData, DIRECTION_ENCRYPT)

    def decrypt(self, tweak, inputData):
        with self._lock:
            return transform(self.bc, tweak, inputData, DIRECTION_DECRYPT)
