[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netkit"
version = "0.1.0"
description = "Small networking toolkit: a worker thread pool, a TFTP client and server, and a multi-user chat server and client"
requires-python = ">=3.10"
dependencies = []
keywords = ["tftp", "udp", "tcp", "chat", "thread pool", "networking", "sockets"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Internet :: File Transfer Protocol (FTP)",
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
netkit-threadpool-demo = "netkit.threadpool:main"
netkit-tftp-server = "netkit.tftp_server:main"
netkit-tftp-client = "netkit.tftp_client:main"
netkit-chat-server = "netkit.chat_server:main"
netkit-chat-client = "netkit.chat_client:main"

[tool.hatch.build.targets.wheel]
packages = ["netkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
