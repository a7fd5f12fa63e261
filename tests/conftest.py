import hashlib

import pytest
import requests

PAYLOADS = {
    "FOLDER01/bios_r640.exe": b"r640 bios image",
    "FOLDER02/bios_r740.exe": b"r740 bios image",
    "FOLDER03/nic_shared.exe": b"shared nic firmware",
    "FOLDER09/orphan.exe": b"not referenced by any bundle",
}


def md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def component(path, name, hash_md5=None):
    hash_md5 = hash_md5 or md5(PAYLOADS[path]).upper()
    return (
        f'<SoftwareComponent path="{path}" hashMD5="{hash_md5}">'
        f'<Name><Display lang="de">{name} (de)</Display><Display lang="en">{name}</Display></Name>'
        f'<ImportantInfo URL="https://www.dell.com/support/{name.replace(" ", "_")}"/>'
        f"</SoftwareComponent>"
    )


def bundle(bundle_id, model, system_id, packages):
    pkgs = "".join(f'<Package path="{p}"/>' for p in packages)
    return (
        f'<SoftwareBundle bundleID="{bundle_id}">'
        f'<TargetSystems><Brand key="3" prefix="PE"><Display lang="en">PowerEdge</Display>'
        f'<Model systemID="{system_id}" systemIDType="BIOS"><Display lang="en">{model}</Display></Model>'
        f"</Brand></TargetSystems>"
        f"<Contents>{pkgs}</Contents>"
        f"</SoftwareBundle>"
    )


def build_catalog(components=None, protocols="HTTPS,HTTP"):
    components = components or [
        component("FOLDER01/bios_r640.exe", "BIOS R640"),
        component("FOLDER02/bios_r740.exe", "BIOS R740"),
        component("FOLDER03/nic_shared.exe", "NIC Firmware"),
        component("FOLDER09/orphan.exe", "Orphan"),
    ]
    return (
        f'<Manifest baseLocation="downloads.dell.com" baseLocationAccessProtocols="{protocols}" version="1.0">'
        + bundle("B-R640", "R640", "0716", ["FOLDER01/bios_r640.exe", "FOLDER03/nic_shared.exe"])
        + bundle("B-R740", "R740", "0715", ["FOLDER02/bios_r740.exe", "nic_shared.exe"])
        + "".join(components)
        + "</Manifest>"
    )


@pytest.fixture
def catalog_xml():
    return build_catalog()


class FakeResponse:
    def __init__(self, url, status_code=200, content=b"", headers=None, text=None):
        self.url = url
        self.status_code = status_code
        self.reason = "OK" if status_code < 400 else "Error"
        self.content = content
        self.headers = headers or {}
        self.text = text if text is not None else content.decode("utf-8", "replace")

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}", response=self)

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeServer:
    """Stand-in for requests.get; routes map url -> FakeResponse or exception."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, url, response):
        self.routes[url] = response

    def serve_packages(self, base="https://downloads.dell.com", payloads=PAYLOADS):
        for path, data in payloads.items():
            self.add(f"{base}/{path}", FakeResponse(f"{base}/{path}", content=data))

    def get(self, url, headers=None, timeout=None, stream=False, **kwargs):
        self.calls.append(url)
        resp = self.routes.get(url)
        if resp is None:
            return FakeResponse(url, status_code=404)
        if isinstance(resp, Exception):
            raise resp
        return resp


@pytest.fixture
def server(monkeypatch):
    srv = FakeServer()
    monkeypatch.setattr(requests, "get", srv.get)
    return srv
