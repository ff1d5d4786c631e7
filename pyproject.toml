[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lobbyhost"
version = "0.1.0"
description = "Dedicated game server host logic: fleet session models, a lobby server-to-server client and empty-server shutdown."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "game-server",
    "dedicated-server",
    "lobby",
    "matchmaking",
    "server-to-server",
    "game-session",
]
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
    "Topic :: Games/Entertainment",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lobbyhost"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
