# SPDX-License-Identifier: AGPL-3.0-only
# (c) 2025

import argparse
import dataclasses
import os
import sys
import time

from eth_account import Account
from web3 import Web3
from web3.datastructures import AttributeDict
from web3.middleware import SignAndSendRawMiddlewareBuilder

from artifacts import Artifact, coerce_constructor_args, load_artifact
from verify import ETHERSCAN_API_URL, EtherscanVerifier


LOCAL_CHAIN_ID = 31337
VERIFY_CONFIRMATIONS = 6


@dataclasses.dataclass(frozen=True)
class DeploymentParams:
	initial_protocol_fee: str = '0005'
	uni_v3_factory_address: str = '0x1F98431c8aD98523631AE4a59f267346ea31F984'  # Goerli UniV3 Factory
	oracle_name: str = 'UniV3TwapOracleLib'
	escrow_name: str = 'Flex'


DEFAULT_PARAMS = DeploymentParams()


@dataclasses.dataclass(frozen=True)
class DeployedContract:
	artifact: Artifact
	address: str
	tx_hash: bytes
	receipt: AttributeDict
	args: list


class DeploymentError(Exception):
	pass


def deploy_contract(w3, artifact, args):
	print('Deploying Contract.....')
	contract = w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
	tx_hash = contract.constructor(*coerce_constructor_args(artifact.abi, args)).transact()
	receipt = w3.eth.wait_for_transaction_receipt(tx_hash)

	if receipt['status'] != 1:
		raise DeploymentError(f'Deployment of {artifact.contract_name} reverted (tx {tx_hash.hex()}).')
	if (address := receipt['contractAddress']) is None:
		raise DeploymentError(f'Deployment of {artifact.contract_name} produced no contract address (tx {tx_hash.hex()}).')

	print(f'Deployed contract to: {address}')
	return DeployedContract(artifact=artifact, address=address, tx_hash=tx_hash, receipt=receipt, args=list(args))


def wait_for_confirmations(w3, tx_hash, confirmations, poll_latency=2):
	receipt = w3.eth.wait_for_transaction_receipt(tx_hash)
	print(f'Waiting for {confirmations} confirmations...')
	# The block holding the transaction is the first confirmation.
	while w3.eth.block_number - receipt['blockNumber'] + 1 < confirmations:
		time.sleep(poll_latency)
	return receipt


def should_verify(chain_id, api_key):
	return chain_id != LOCAL_CHAIN_ID and bool(api_key)


def deploy_all(w3, artifacts_dir, api_key=None, params=DEFAULT_PARAMS, verifier_cls=EtherscanVerifier, explorer_api_url=ETHERSCAN_API_URL, poll_latency=2):
	oracle = deploy_contract(w3, load_artifact(artifacts_dir, params.oracle_name), [])

	escrow = deploy_contract(w3, load_artifact(artifacts_dir, params.escrow_name), [
		params.initial_protocol_fee,
		oracle.address,
		params.uni_v3_factory_address,
	])

	if should_verify(chain_id := w3.eth.chain_id, api_key):
		wait_for_confirmations(w3, escrow.tx_hash, VERIFY_CONFIRMATIONS, poll_latency)
		with verifier_cls(api_key, chain_id, api_url=explorer_api_url) as verifier:
			for deployed in (oracle, escrow):
				verifier.verify(deployed.address, deployed.artifact, deployed.args)

	return oracle, escrow


def connect(rpc_url, account_index, private_key=None):
	w3 = Web3(Web3.HTTPProvider(rpc_url))
	if private_key:
		account = Account.from_key(private_key)
		w3.middleware_onion.inject(SignAndSendRawMiddlewareBuilder.build(account), name='signing', layer=0)
		w3.eth.default_account = account.address
	else:
		w3.eth.default_account = w3.eth.accounts[account_index]
	return w3


def main(argv=None):
	parser0 = argparse.ArgumentParser(allow_abbrev=False, description='Deploy the UniV3 TWAP oracle library and the Flex escrow, then verify them on Etherscan.')

	parser0.add_argument('--host', default='localhost', metavar='ADDRESS', help='The host to connect to. Default: %(default)s')
	parser0.add_argument('--port', type=int, default=8545, metavar='NUMBER', help='The port number to use. Default: %(default)s')
	parser0.add_argument('--rpc-url', metavar='URL', help='(Overwrites --host and --port.)')
	parser0.add_argument('--account-index', type=int, default=0, metavar='NUMBER', help='The index of the node account to deploy from, unless DEPLOYER_PRIVATE_KEY is set. Default: %(default)s')
	parser0.add_argument('--artifacts', default='artifacts', metavar='PATH', help='The Hardhat artifacts directory. Default: %(default)s')
	parser0.add_argument('--explorer-api-url', default=ETHERSCAN_API_URL, metavar='URL', help='The block explorer API endpoint used for verification. Default: %(default)s')

	args0 = parser0.parse_args(argv)

	try:
		w3 = connect(
			args0.rpc_url or f'http://{args0.host}:{args0.port}',
			args0.account_index,
			os.environ.get('DEPLOYER_PRIVATE_KEY'),
		)
		deploy_all(
			w3,
			args0.artifacts,
			api_key=os.environ.get('ETHERSCAN_API_KEY'),
			explorer_api_url=args0.explorer_api_url,
		)
	except Exception as e:
		print(f'Error: {e!r}', file=sys.stderr)
		return 1
	return 0


if __name__ == '__main__':
	sys.exit(main())
