"""HTTP-клиент для эндпоинтов configuration-as-code живого Jenkins."""

import typing as tp

import requests

from butler import config


class JenkinsApiError(RuntimeError):
    """Jenkins ответил не 2xx."""

    def __init__(self, method: str, url: str, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"{method} {url} -> HTTP {status}: {body[:500]}")


class JenkinsClient:
    """Минимальный клиент Jenkins: crumb, CasC check/apply/reload/export, ping."""

    def __init__(
        self,
        url: str,
        user: tp.Optional[str] = None,
        token: tp.Optional[str] = None,
        session: tp.Optional[requests.Session] = None,
        timeout: int = config.HTTP_TIMEOUT,
    ):
        self.url = url.rstrip("/")
        self.session = session or requests.Session()
        if user and token:
            self.session.auth = (user, token)
        self.timeout = timeout
        self._crumb: tp.Optional[dict[str, str]] = None

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.url}{path}"
        headers = dict(kwargs.pop("headers", {}) or {})
        if method != "GET":
            headers.update(self.crumb())
        response = self.session.request(
            method, url, headers=headers, timeout=self.timeout, **kwargs
        )
        if not 200 <= response.status_code < 300:
            raise JenkinsApiError(method, url, response.status_code, response.text)
        return response

    def crumb(self) -> dict[str, str]:
        """CSRF-токен; пустой словарь, если crumb issuer выключен."""
        if self._crumb is None:
            response = self.session.get(
                f"{self.url}/crumbIssuer/api/json", timeout=self.timeout
            )
            if response.status_code == 200:
                data = response.json()
                self._crumb = {data["crumbRequestField"]: data["crumb"]}
            else:
                self._crumb = {}
        return self._crumb

    def ping(self) -> tuple[int, tp.Optional[str]]:
        """Проверить, что веб-интерфейс отвечает. Возвращает (код, версию Jenkins)."""
        response = self.session.get(f"{self.url}/login", timeout=self.timeout)
        return response.status_code, response.headers.get("X-Jenkins")

    def whoami(self) -> dict:
        return self._request("GET", "/whoAmI/api/json").json()

    def check(self, yaml_text: str) -> str:
        response = self._request(
            "POST",
            "/configuration-as-code/check",
            data=yaml_text.encode("utf-8"),
            headers={"Content-Type": "application/x-yaml"},
        )
        return response.text

    def apply(self, yaml_text: str) -> None:
        self._request(
            "POST",
            "/configuration-as-code/apply",
            data=yaml_text.encode("utf-8"),
            headers={"Content-Type": "application/x-yaml"},
        )

    def reload(self) -> None:
        self._request("POST", "/configuration-as-code/reload")

    def reload_with_token(self, token: str) -> None:
        self._request(
            "POST", "/reload-configuration-as-code/", params={"casc-reload-token": token}
        )

    def export(self) -> str:
        return self._request("POST", "/configuration-as-code/export").text
