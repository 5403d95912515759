"""
Shared fixtures: an in-memory stand-in for a web3 node and a Hardhat
artifacts directory holding the two contracts the deploy script needs.
"""

import json

import pytest
from web3 import Web3
from web3.datastructures import AttributeDict


ORACLE_BYTECODE = '0x6080604052'
ESCROW_BYTECODE = '0x6080604053'

ESCROW_ABI = [
	{
		'type': 'constructor',
		'stateMutability': 'nonpayable',
		'inputs': [
			{'name': '_protocolFee', 'type': 'uint256', 'internalType': 'uint256'},
			{'name': '_oracle', 'type': 'address', 'internalType': 'address'},
			{'name': '_uniV3Factory', 'type': 'address', 'internalType': 'address'},
		],
	},
	{'type': 'function', 'name': 'protocolFee', 'inputs': [], 'outputs': [{'type': 'uint256'}], 'stateMutability': 'view'},
]

BUILD_INFO = {
	'solcLongVersion': '0.8.20+commit.a1b79de6',
	'input': {
		'language': 'Solidity',
		'sources': {
			'contracts/Flex.sol': {'content': 'contract Flex {}'},
			'contracts/UniV3TwapOracleLib.sol': {'content': 'library UniV3TwapOracleLib {}'},
		},
		'settings': {'optimizer': {'enabled': True, 'runs': 200}},
	},
}


class FakeConstructor:
	def __init__(self, eth, bytecode, args):
		self.eth = eth
		self.bytecode = bytecode
		self.args = args

	def transact(self):
		self.eth.attempts.append((self.bytecode, self.args))
		if self.bytecode in self.eth.fail_bytecodes:
			raise ValueError('insufficient funds for gas * price + value')
		return self.eth.mine(self.bytecode, self.args)


class FakeContractFactory:
	def __init__(self, eth, bytecode):
		self.eth = eth
		self.bytecode = bytecode

	def constructor(self, *args):
		return FakeConstructor(self.eth, self.bytecode, list(args))


class FakeEth:
	def __init__(self, chain_id, fail_bytecodes=(), revert_bytecodes=(), addressless_bytecodes=()):
		self.chain_id = chain_id
		self.fail_bytecodes = set(fail_bytecodes)
		self.revert_bytecodes = set(revert_bytecodes)
		self.addressless_bytecodes = set(addressless_bytecodes)
		self.attempts = []
		self.deployments = []
		self.receipts = {}
		self.default_account = None
		self._block = 100
		self._nonce = 0

	@property
	def block_number(self):
		# Every query sees one more block.
		self._block += 1
		return self._block

	def contract(self, abi, bytecode):
		return FakeContractFactory(self, bytecode)

	def mine(self, bytecode, args):
		self._nonce += 1
		tx_hash = self._nonce.to_bytes(32, 'big')
		reverted = bytecode in self.revert_bytecodes
		address = None if reverted or bytecode in self.addressless_bytecodes else Web3.to_checksum_address(f'0x{0xC0DE0000 + self._nonce:040x}')
		self.receipts[tx_hash] = AttributeDict({
			'transactionHash': tx_hash,
			'blockNumber': self._block,
			'status': 0 if reverted else 1,
			'contractAddress': address,
		})
		self.deployments.append((bytecode, args, address))
		return tx_hash

	def wait_for_transaction_receipt(self, tx_hash):
		return self.receipts[tx_hash]


class FakeWeb3:
	def __init__(self, chain_id=31337, **kwargs):
		self.eth = FakeEth(chain_id, **kwargs)


class RecordingVerifier:
	instances = []

	def __init__(self, api_key, chain_id, api_url=None):
		self.api_key = api_key
		self.chain_id = chain_id
		self.api_url = api_url
		self.calls = []
		self.closed = False
		RecordingVerifier.instances.append(self)

	def __enter__(self):
		return self

	def __exit__(self, *exc_info):
		self.closed = True

	def verify(self, address, artifact, args):
		self.calls.append((address, artifact.contract_name, list(args)))


@pytest.fixture
def recording_verifier():
	RecordingVerifier.instances = []
	yield RecordingVerifier
	RecordingVerifier.instances = []


def write_artifact(artifacts_dir, name, abi, bytecode, build_info_id='f00d'):
	contract_dir = artifacts_dir / 'contracts' / f'{name}.sol'
	contract_dir.mkdir(parents=True, exist_ok=True)
	(contract_dir / f'{name}.json').write_text(json.dumps({
		'_format': 'hh-sol-artifact-1',
		'contractName': name,
		'sourceName': f'contracts/{name}.sol',
		'abi': abi,
		'bytecode': bytecode,
		'deployedBytecode': bytecode,
	}))
	(contract_dir / f'{name}.dbg.json').write_text(json.dumps({
		'_format': 'hh-sol-dbg-1',
		'buildInfo': f'../../build-info/{build_info_id}.json',
	}))
	return contract_dir / f'{name}.json'


@pytest.fixture
def artifacts_dir(tmp_path):
	artifacts_dir = tmp_path / 'artifacts'
	(artifacts_dir / 'build-info').mkdir(parents=True)
	(artifacts_dir / 'build-info' / 'f00d.json').write_text(json.dumps(BUILD_INFO))
	write_artifact(artifacts_dir, 'UniV3TwapOracleLib', [], ORACLE_BYTECODE)
	write_artifact(artifacts_dir, 'Flex', ESCROW_ABI, ESCROW_BYTECODE)
	return artifacts_dir
