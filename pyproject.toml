[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "notifyhub"
version = "0.1.0"
description = "Notification service that queues push and e-mail jobs in Redis and delivers push jobs with background workers"
requires-python = ">=3.10"
keywords = ["notifications", "push", "fcm", "redis", "queue", "worker", "aiohttp"]
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
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Topic :: Communications",
]
dependencies = [
    "aiohttp",
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["notifyhub"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
