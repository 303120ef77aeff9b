[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "taikoproof"
version = "0.1.0"
description = "Keccak, RLP, sparse Merkle Patricia tries, ABI encoding and block metadata for Taiko block proofs"
requires-python = ">=3.10"
keywords = ["ethereum", "taiko", "merkle-patricia-trie", "rlp", "abi", "keccak", "eip-1186", "rollup"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pycryptodome",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["taikoproof"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
