# tests/test_crypto_config.py
import threading
import unittest

from nvr_rpc.crypto_config import CryptoNegotiationStore, parse_public_key
from nvr_rpc.errors import InvalidPublicKey


class TestParsePublicKey(unittest.TestCase):

    def test_parses_hex_components(self):
        modulus, exponent = parse_public_key("N:C3A1FF,E:010001")
        self.assertEqual(modulus, 0xC3A1FF)
        self.assertEqual(exponent, 65537)

    def test_lowercase_and_whitespace(self):
        self.assertEqual(parse_public_key("N:ff, E:3"), (255, 3))

    def test_rejects_malformed_keys(self):
        for bad in ["", "N:ff", "N:ff,E:3,X:1", "M:ff,E:3", "N:ff,X:3", "N:zz,E:3", "N:,E:3", "N:0,E:3"]:
            with self.subTest(key=bad):
                with self.assertRaises(InvalidPublicKey):
                    parse_public_key(bad)


class TestCryptoNegotiationStore(unittest.TestCase):

    def setUp(self):
        self.store = CryptoNegotiationStore()

    def test_starts_empty(self):
        self.assertFalse(self.store.is_configured)
        self.assertIsNone(self.store.current_ciphers)
        self.assertIsNone(self.store.current_modulus)

    def test_update_then_reset(self):
        snap = self.store.update("RSA", ["RPAC-256", "AES-128"], "N:ff,E:10001")
        self.assertEqual(snap.ciphers, ("RPAC-256", "AES-128"))
        self.assertEqual(self.store.current_asymmetric, "RSA")
        self.assertEqual(self.store.current_modulus, 255)
        self.assertEqual(self.store.current_exponent, 0x10001)

        self.store.reset()
        self.assertIsNone(self.store.current_ciphers)
        self.assertIsNone(self.store.current_modulus)
        self.assertIsNone(self.store.current_exponent)
        self.assertFalse(self.store.is_configured)

    def test_failed_update_keeps_previous_state(self):
        self.store.update("RSA", ["AES-128"], "N:ff,E:3")
        with self.assertRaises(InvalidPublicKey):
            self.store.update("RSA", ["RPAC-256"], "N:nothex,E:3")
        self.assertEqual(self.store.current_ciphers, ("AES-128",))
        self.assertEqual(self.store.current_modulus, 255)

    def test_failed_update_on_empty_store_leaves_it_empty(self):
        with self.assertRaises(InvalidPublicKey):
            self.store.update("RSA", ["RPAC-256"], "garbage")
        self.assertFalse(self.store.is_configured)

    def test_readers_never_see_mixed_state(self):
        # Each writer pairs a distinct cipher list with a distinct modulus.
        records = {
            ("AES-128",): 0xAB,
            ("RPAC-256",): 0xCD,
        }
        keys = {("AES-128",): "N:ab,E:3", ("RPAC-256",): "N:cd,E:3"}
        stop = threading.Event()
        mismatches = []

        def writer():
            i = 0
            while not stop.is_set():
                ciphers = list(records)[i % 2]
                if i % 7 == 0:
                    self.store.reset()
                else:
                    self.store.update("RSA", ciphers, keys[ciphers])
                i += 1

        def reader():
            for _ in range(5000):
                snap = self.store.snapshot()
                if snap is None:
                    continue
                if records[snap.ciphers] != snap.modulus:
                    mismatches.append(snap)

        writers = [threading.Thread(target=writer) for _ in range(2)]
        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in writers + readers:
            t.start()
        for t in readers:
            t.join()
        stop.set()
        for t in writers:
            t.join()

        self.assertEqual(mismatches, [])


if __name__ == '__main__':
    unittest.main()
