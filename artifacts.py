# SPDX-License-Identifier: AGPL-3.0-only
# (c) 2025

import dataclasses
import json
import pathlib

from web3 import Web3


class ArtifactError(Exception):
	pass


class ArtifactNotFoundError(ArtifactError):
	pass


@dataclasses.dataclass(frozen=True)
class Artifact:
	contract_name: str
	source_name: str
	abi: list
	bytecode: str
	path: pathlib.Path

	@property
	def fully_qualified_name(self):
		return f'{self.source_name}:{self.contract_name}'

	def build_info(self):
		# Hardhat writes <Name>.dbg.json next to the artifact, pointing at the build-info file.
		dbg_path = self.path.with_name(f'{self.contract_name}.dbg.json')
		try:
			with open(dbg_path, 'r') as f:
				build_info_path = dbg_path.parent / json.load(f)['buildInfo']
			with open(build_info_path, 'r') as f:
				return json.load(f)
		except (OSError, KeyError, json.JSONDecodeError) as e:
			raise ArtifactError(f'No build info for {self.contract_name!r}: {e!r}') from e


def load_artifact(artifacts_dir, name):
	artifacts_dir = pathlib.Path(artifacts_dir)
	matches = [p for p in artifacts_dir.rglob(f'{name}.json') if 'build-info' not in p.parts]
	match matches:
		case []:
			raise ArtifactNotFoundError(f'Artifact {name!r} not found in {str(artifacts_dir)!r}. Compile the contracts first.')
		case [path]:
			pass
		case _:
			raise ArtifactError(f'Artifact name {name!r} is ambiguous: {sorted(map(str, matches))}')

	with open(path, 'r') as f:
		data = json.load(f)

	bytecode = data.get('bytecode', '')
	if bytecode in ('', '0x'):
		raise ArtifactError(f'{name!r} has no bytecode (abstract contract or interface?)')

	return Artifact(
		contract_name=data.get('contractName', name),
		source_name=data.get('sourceName', ''),
		abi=data['abi'],
		bytecode=bytecode,
		path=path,
	)


def _coerce(abi_type, value):
	if abi_type.endswith(']'):
		return value
	if abi_type.startswith(('uint', 'int')) and isinstance(value, str):
		return int(value, 16) if value.lower().startswith('0x') else int(value)
	if abi_type == 'address':
		return Web3.to_checksum_address(value)
	return value


def constructor_inputs(abi):
	return next((entry.get('inputs', []) for entry in abi if entry.get('type') == 'constructor'), [])


def coerce_constructor_args(abi, args):
	inputs = constructor_inputs(abi)
	if len(inputs) != len(args):
		raise ValueError(f'The constructor takes {len(inputs)} arguments but {len(args)} were given.')
	return [_coerce(i['type'], a) for i, a in zip(inputs, args)]
