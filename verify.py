# SPDX-License-Identifier: AGPL-3.0-only
# (c) 2025

import json
import time

import eth_abi
import httpx

from artifacts import coerce_constructor_args, constructor_inputs


ETHERSCAN_API_URL = 'https://api.etherscan.io/v2/api'


class VerificationError(Exception):
	pass


def encode_constructor_args(abi, args):
	values = coerce_constructor_args(abi, args)
	if not values:
		return ''
	return eth_abi.encode([i['type'] for i in constructor_inputs(abi)], values).hex()


def _is_already_verified(result):
	return 'already verified' in str(result).lower()


class EtherscanVerifier:
	def __init__(self, api_key, chain_id, api_url=ETHERSCAN_API_URL, client=None, poll_latency=5, max_polls=60):
		self.api_key = api_key
		self.chain_id = chain_id
		self.api_url = api_url
		self.poll_latency = poll_latency
		self.max_polls = max_polls
		self._owns_client = client is None
		self.client = httpx.Client(timeout=30) if client is None else client

	def __enter__(self):
		return self

	def __exit__(self, *exc_info):
		self.close()

	def close(self):
		if self._owns_client:
			self.client.close()

	def _request(self, method, data):
		response = self.client.request(
			method,
			self.api_url,
			params={'chainid': self.chain_id} | (data if method == 'GET' else {}),
			data=data if method == 'POST' else None,
		)
		response.raise_for_status()
		body = response.json()
		return body.get('status') == '1', body.get('result')

	def verify(self, address, artifact, args):
		print('Verifying contract...')
		build_info = artifact.build_info()

		ok, result = self._request('POST', {
			'apikey': self.api_key,
			'module': 'contract',
			'action': 'verifysourcecode',
			'contractaddress': address,
			'sourceCode': json.dumps(build_info['input']),
			'codeformat': 'solidity-standard-json-input',
			'contractname': artifact.fully_qualified_name,
			'compilerversion': f'v{build_info["solcLongVersion"]}',
			'constructorArguements': encode_constructor_args(artifact.abi, args),
		})
		if not ok:
			if _is_already_verified(result):
				print('Contract is already verified.')
				return
			raise VerificationError(f'Verification of {address} was rejected: {result}')

		guid = result
		for _ in range(self.max_polls):
			ok, result = self._request('GET', {
				'apikey': self.api_key,
				'module': 'contract',
				'action': 'checkverifystatus',
				'guid': guid,
			})
			if ok or _is_already_verified(result):
				print(f'Verified {artifact.contract_name} at {address}: {result}')
				return
			if 'pending' not in str(result).lower():
				raise VerificationError(f'Verification of {address} failed: {result}')
			time.sleep(self.poll_latency)

		raise VerificationError(f'Verification of {address} is still pending after {self.max_polls} polls.')
