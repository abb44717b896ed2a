"""Tests for certhaproxy.engine."""
import datetime
import os
import unittest

import mock
import pytz
import requests
from zope.interface.verify import verifyObject

from acme import challenges
from acme import errors as acme_errors
from acme import messages

from certhaproxy import errors
from certhaproxy import interfaces
from certhaproxy import storage
from certhaproxy.plugins import webroot
from certhaproxy.tests import acme_util
from certhaproxy.tests import util as test_util


DOMAINS = ["example.com", "www.example.com"]
WEEK = datetime.timedelta(days=7)


class AcmeEngineTest(test_util.ConfigTestCase):
    """Tests for certhaproxy.engine.AcmeEngine."""

    def setUp(self):
        super().setUp()
        from certhaproxy.engine import AcmeEngine

        self.store = storage.CertStore(self.config)
        self.responder = webroot.WebRoot(
            {"webroot_path": self.config.webroot_path})
        self.engine = AcmeEngine(
            challenges={"http-01": self.responder}, store=self.store,
            server="https://acme.example/directory", renew_within=WEEK,
            self_verify=False)

        patcher = mock.patch("certhaproxy.engine.acme_client")
        self.mock_client = patcher.start()
        self.addCleanup(patcher.stop)
        patcher = mock.patch("certhaproxy.engine.crypto_util.make_key")
        self.mock_make_key = patcher.start()
        self.mock_make_key.return_value = test_util.key_pem()
        self.addCleanup(patcher.stop)

        self.acme = self.mock_client.ClientV2.return_value
        self.acme.new_account.return_value = acme_util.REGR
        self.orderr = mock.MagicMock(authorizations=[
            acme_util.gen_authzr("example.com", [acme_util.DNS01,
                                                 acme_util.HTTP01]),
            acme_util.gen_authzr("www.example.com", [acme_util.HTTP01_2]),
        ])
        self.acme.new_order.return_value = self.orderr
        self.fullchain = test_util.make_fullchain(DOMAINS)
        self.acme.poll_and_finalize.return_value = mock.MagicMock(
            fullchain_pem=self.fullchain.decode())
        self.addCleanup(self.engine.shutdown)

    def _register(self, **kwargs):
        options = dict(agree_tos=True, domains=DOMAINS,
                       email="admin@example.com", rsa_key_size=2048)
        options.update(kwargs)
        return self.engine.register(**options)

    def _save_existing(self, **kwargs):
        cert_pem = test_util.make_cert(DOMAINS, **kwargs)
        return self.store.save_certificate(
            DOMAINS, test_util.key_pem(), cert_pem, b"", cert_pem)

    def _challenge_path(self, chall):
        return os.path.join(self.config.webroot_path, ".well-known",
                            "acme-challenge", chall.encode("token"))

    def test_provides_interface(self):
        self.assertTrue(verifyObject(interfaces.IAcmeEngine, self.engine))

    def test_register_new(self):
        published = []

        def _answer(challb, response):  # pylint: disable=unused-argument
            path = self._challenge_path(challb.chall)
            published.append(os.path.exists(path))

        self.acme.answer_challenge.side_effect = _answer

        certs = self._register()

        self.assertEqual(DOMAINS, certs.altnames)
        self.assertEqual(None, certs.renewing)
        with open(certs.fullchain, "rb") as f:
            self.assertEqual(self.fullchain, f.read())
        self.assertEqual([True, True], published)
        self.assertFalse(os.path.exists(
            self._challenge_path(acme_util.HTTP01)))
        self.assertFalse(os.path.exists(
            self._challenge_path(acme_util.HTTP01_2)))
        self.assertTrue(self.acme.new_account.called)
        self.assertEqual(acme_util.REGR, self.store.load_registration())
        self.assertEqual(test_util.key_pem(), self.store.load_account_key())

    def test_register_answers_with_validation(self):
        self._register()
        challb, response = self.acme.answer_challenge.call_args_list[0][0]
        self.assertTrue(challb.chall is acme_util.HTTP01)
        self.assertTrue(isinstance(response, challenges.HTTP01Response))

    def test_register_existing_account(self):
        self.store.save_account_key(test_util.key_pem())
        self.store.save_registration(acme_util.REGR)

        self._register()

        self.assertFalse(self.acme.new_account.called)
        self.mock_client.ClientNetwork.assert_called_once_with(
            mock.ANY, account=acme_util.REGR, user_agent=mock.ANY)

    def test_register_account_conflict(self):
        self.acme.new_account.side_effect = acme_errors.ConflictError(
            acme_util.REGR.uri)
        self.acme.query_registration.return_value = acme_util.REGR

        self._register()

        regr = self.acme.query_registration.call_args[0][0]
        self.assertEqual(acme_util.REGR.uri, regr.uri)
        self.assertEqual(acme_util.REGR, self.store.load_registration())

    def test_register_reuses_domain_key(self):
        path = os.path.join(self.tempdir, "domain.pem")
        with open(path, "wb") as f:
            f.write(test_util.key_pem())
        self.store = storage.CertStore(self.config.replace(
            domain_key_path=path))
        self.engine.store = self.store

        certs = self._register()

        self.assertEqual(path, certs.privkey)
        # account key only
        self.assertEqual(1, self.mock_make_key.call_count)

    def test_register_skips_valid_authorizations(self):
        self.orderr.authorizations = [acme_util.gen_authzr(
            "example.com", [acme_util.HTTP01], status=messages.STATUS_VALID)]
        self._register()
        self.assertFalse(self.acme.answer_challenge.called)

    def test_register_no_http01_challenge(self):
        self.orderr.authorizations = [acme_util.gen_authzr(
            "example.com", [acme_util.DNS01])]
        self.assertRaises(errors.ProtocolError, self._register)
        self.assertFalse(self.acme.poll_and_finalize.called)

    def test_register_acme_error_cleans_up(self):
        self.acme.poll_and_finalize.side_effect = acme_errors.Error("boom")

        with self.assertRaises(errors.ProtocolError) as context:
            self._register()

        self.assertTrue(isinstance(context.exception.error,
                                   acme_errors.Error))
        self.assertFalse(os.path.exists(
            self._challenge_path(acme_util.HTTP01)))
        self.assertEqual(None, self.store.load_certificate(DOMAINS))

    def test_register_network_error(self):
        self.mock_client.ClientV2.get_directory.side_effect = (
            requests.exceptions.ConnectionError("connection refused"))

        with self.assertRaises(errors.ProtocolError) as context:
            self._register()

        self.assertTrue(isinstance(context.exception.error,
                                   requests.exceptions.ConnectionError))
        self.assertFalse(self.acme.new_order.called)

    def test_register_timeout_during_finalize(self):
        self.acme.poll_and_finalize.side_effect = (
            requests.exceptions.Timeout("read timed out"))
        self.assertRaises(errors.ProtocolError, self._register)
        self.assertFalse(os.path.exists(
            self._challenge_path(acme_util.HTTP01)))

    def test_register_requires_agree_tos(self):
        self.assertRaises(errors.ConfigurationError, self._register,
                          agree_tos=False)
        self.assertFalse(self.mock_client.ClientV2.called)

    def test_register_unsupported_challenge(self):
        self.assertRaises(errors.ConfigurationError, self._register,
                          challenge_type="dns-01")

    def test_register_no_responder(self):
        self.engine.challenges = {}
        self.assertRaises(errors.ConfigurationError, self._register)

    def test_register_existing_fresh(self):
        existing = self._save_existing()

        certs = self._register()

        self.assertEqual(existing, certs)
        self.assertEqual(None, certs.renewing)
        self.assertFalse(self.acme.new_order.called)

    def test_register_existing_in_window(self):
        now = datetime.datetime.now(pytz.UTC).replace(microsecond=0)
        existing = self._save_existing(
            not_before=now - datetime.timedelta(days=87),
            not_after=now + datetime.timedelta(days=3))

        certs = self._register()

        self.assertEqual(existing, certs)
        self.assertTrue(certs.renewing is not None)
        renewed = certs.renewing.result(timeout=30)
        self.assertEqual(DOMAINS, renewed.altnames)
        self.assertTrue(renewed.expires_at > existing.expires_at)
        self.assertEqual(None, renewed.renewing)

    def test_register_existing_expired(self):
        now = datetime.datetime.now(pytz.UTC).replace(microsecond=0)
        self._save_existing(not_before=now - datetime.timedelta(days=91),
                            not_after=now - datetime.timedelta(days=1))

        certs = self._register()

        self.assertEqual(None, certs.renewing)
        self.assertFalse(certs.is_expired())
        self.assertTrue(self.acme.new_order.called)

    def test_register_duplicate(self):
        self._save_existing()
        self.engine.duplicate = True

        certs = self._register()

        self.assertTrue(self.acme.new_order.called)
        self.assertEqual(None, certs.renewing)

    @mock.patch("certhaproxy.engine.logger")
    def test_register_self_verify_failure(self, mock_logger):
        self.engine.self_verify = True
        with mock.patch.object(challenges.HTTP01Response, "simple_verify",
                               return_value=False) as mock_verify:
            self._register()

        self.assertEqual(2, mock_verify.call_count)
        self.assertEqual(80, mock_verify.call_args[1]["port"])
        self.assertTrue(mock_logger.warning.called)
        self.assertEqual(2, self.acme.answer_challenge.call_count)

    def test_check(self):
        self.assertEqual(None, self.engine.check(self.config))
        existing = self._save_existing()
        self.assertEqual(existing, self.engine.check(self.config))

    def test_renew_not_due(self):
        existing = self._save_existing()
        self.assertTrue(self.engine.renew(self.config, existing) is existing)
        self.assertFalse(self.acme.new_order.called)

    def test_renew_due(self):
        now = datetime.datetime.now(pytz.UTC).replace(microsecond=0)
        existing = self._save_existing(
            not_before=now - datetime.timedelta(days=87),
            not_after=now + datetime.timedelta(days=3))

        certs = self.engine.renew(self.config, existing)

        self.assertTrue(certs.expires_at > existing.expires_at)
        self.assertEqual(None, certs.renewing)

    def test_renew_duplicate(self):
        existing = self._save_existing()
        self.engine.duplicate = True
        self.engine.renew(self.config, existing)
        self.assertTrue(self.acme.new_order.called)


if __name__ == "__main__":
    unittest.main()  # pragma: no cover
