# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Unit tests for the manifest parser.
"""
import textwrap
from pathlib import Path
import pytest
import yaml
from kdesc.PARSERS.manifest_parser import ManifestParser
from kdesc.MODELS.settings import Settings
from kdesc.MODELS.workload_descriptor import UpdateStrategyType
from kdesc.MODELS.route_descriptor import PathType
from kdesc.errors import ManifestParseError, InterpolationError

GEOIP_MANIFEST = Path(__file__).resolve().parents[2] / "manifests" / "geoip.yaml"

SERVICE = textwrap.dedent("""
    apiVersion: v1
    kind: Service
    metadata:
      name: web
    spec:
      ports:
      - name: http
        port: 80
        targetPort: 8000
      selector:
        app: web
""")


def test_parse_geoip(tmp_path):
    parser = ManifestParser(context={})
    manifest = parser.parse(str(GEOIP_MANIFEST))

    assert manifest.keys() == ["Service/geoip", "Deployment/geoip", "Ingress/geoip"]
    assert manifest.source == str(GEOIP_MANIFEST)

    service = manifest.services[0]
    assert service.ports[0].name == "web"
    assert service.ports[0].port == 8080
    assert service.selector == {"name": "geoip"}

    workload = manifest.workloads[0]
    assert workload.replicas == 1
    assert workload.strategy.type == UpdateStrategyType.RECREATE
    assert workload.selector == {"name": "geoip"}
    container = workload.template.containers[0]
    assert container.image == "dharmendrakariya/geo:k8s"
    assert [e.name for e in container.env] == ["GEOIP_LICENSE", "GEOIP_RS_HOST", "GEOIP_RS_PORT"]
    assert container.env_map()["GEOIP_RS_PORT"] == "8080"
    assert container.ports[0].container_port == 8080

    route = manifest.routes[0]
    assert route.ingress_class == "nginx"
    assert "more_set_headers" in route.annotations["nginx.ingress.kubernetes.io/configuration-snippet"]
    path = route.rules[0].paths[0]
    assert route.rules[0].host == "geoip.YourDomain.xyz"
    assert path.path == "/"
    assert path.path_type == PathType.PREFIX
    assert path.backend_service_name == "geoip"
    assert path.backend_service_port_name == "web"


def test_controller_snippets_are_not_interpolated():
    manifest = ManifestParser(context={}).parse(str(GEOIP_MANIFEST))
    snippet = manifest.routes[0].annotations["nginx.ingress.kubernetes.io/configuration-snippet"]
    assert "$http_x_forwarded_for" in snippet
    assert "$remote_addr, $server_addr" in snippet


def test_parse_service_fields():
    manifest = ManifestParser(context={}).parse_from_string(SERVICE)
    port = manifest.services[0].ports[0]
    assert port.target_port == 8000
    assert port.effective_target_port == 8000
    assert manifest.services[0].namespace == "default"


def test_interpolation_from_context():
    content = SERVICE.replace("name: web\n", "name: ${APP_NAME:-web}\n", 1).replace("port: 80", "port: ${PORT}")
    manifest = ManifestParser(context={"PORT": "8081"}).parse_from_string(content)
    assert manifest.services[0].name == "web"
    assert manifest.services[0].ports[0].port == 8081


def test_interpolation_missing_variable():
    content = SERVICE.replace("port: 80", "port: ${PORT}")
    with pytest.raises(InterpolationError) as exc:
        ManifestParser(context={}).parse_from_string(content)
    assert exc.value.missing == ["PORT"]


def _geoip_with_license(value):
    return GEOIP_MANIFEST.read_text().replace('"**YourLicaenceKey***"', value)


def test_substituted_value_with_hash_is_kept_whole():
    content = _geoip_with_license("${LIC}")
    manifest = ManifestParser(context={"LIC": "abc #123"}).parse_from_string(content)
    assert manifest.workloads[0].template.containers[0].env_map()["GEOIP_LICENSE"] == "abc #123"


def test_substituted_value_does_not_change_document_structure():
    content = _geoip_with_license("${LIC}")
    manifest = ManifestParser(context={"LIC": "key: val\nkind: Secret"}).parse_from_string(content)
    assert manifest.keys() == ["Service/geoip", "Deployment/geoip", "Ingress/geoip"]
    container = manifest.workloads[0].template.containers[0]
    assert container.env_map()["GEOIP_LICENSE"] == "key: val\nkind: Secret"
    assert container.image == "dharmendrakariya/geo:k8s"


def test_quoted_placeholder_stays_a_string():
    content = _geoip_with_license('"${LIC}"')
    manifest = ManifestParser(context={"LIC": "12345"}).parse_from_string(content)
    assert manifest.workloads[0].template.containers[0].env_map()["GEOIP_LICENSE"] == "12345"


def test_placeholders_in_comments_are_ignored():
    content = "# set ${UNUSED} before applying\n" + GEOIP_MANIFEST.read_text()
    manifest = ManifestParser(context={}).parse_from_string(content)
    assert len(manifest) == 3


def test_mapping_keys_are_interpolated():
    content = SERVICE.replace("    app: web\n", "    ${SELECTOR_KEY:-app}: web\n")
    manifest = ManifestParser(context={"SELECTOR_KEY": "tier"}).parse_from_string(content)
    assert manifest.services[0].selector == {"tier": "web"}


def test_missing_variables_are_collected_across_documents():
    content = SERVICE.replace("port: 80", "port: ${PORT}") + "---\n" + SERVICE.replace("name: web\n", "name: ${NAME}\n", 1)
    with pytest.raises(InterpolationError) as exc:
        ManifestParser(context={}).parse_from_string(content)
    assert exc.value.missing == ["NAME", "PORT"]


def test_quoted_numbers_are_rejected():
    content = SERVICE.replace("port: 80", 'port: "8080"')
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string(content)
    assert ("Service/web", "ports[0].port") in {(i.resource, i.path) for i in exc.value.issues}


def test_unreadable_file(tmp_path):
    path = tmp_path / "manifest.yaml"
    path.write_bytes(b"caf\xe9")
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse(str(path))
    assert "cannot read file" in exc.value.issues[0].message

    with pytest.raises(ManifestParseError):
        ManifestParser(context={}).parse(str(tmp_path))


def test_empty_documents_are_skipped():
    manifest = ManifestParser(context={}).parse_from_string("---\n" + SERVICE + "\n---\n---\n")
    assert manifest.keys() == ["Service/web"]


def test_empty_content():
    assert len(ManifestParser(context={}).parse_from_string("")) == 0


def test_invalid_yaml():
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string("kind: [unclosed")
    assert "invalid YAML" in exc.value.issues[0].message


def test_unknown_kind_is_an_error():
    content = SERVICE + "---\napiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: cfg\n"
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string(content)
    issue = exc.value.issues[0]
    assert issue.resource == "document[1]"
    assert "unrecognized kind v1/ConfigMap" in issue.message


def test_unknown_kind_can_be_ignored():
    content = SERVICE + "---\napiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: cfg\n"
    parser = ManifestParser(context={}, settings=Settings(ignore_unknown_kinds=True))
    assert parser.parse_from_string(content).keys() == ["Service/web"]


def test_wrong_api_version():
    content = SERVICE.replace("apiVersion: v1", "apiVersion: apps/v1")
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string(content)
    issue = exc.value.issues[0]
    assert issue.path == "apiVersion"
    assert "expected v1" in issue.message


def test_missing_kind():
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string("apiVersion: v1\nmetadata:\n  name: x\n")
    assert "apiVersion and kind" in exc.value.issues[0].message


def test_missing_name():
    content = SERVICE.replace("  name: web\n", "  labels: {}\n", 1)
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string(content)
    assert exc.value.issues[0].path == "metadata.name"


def test_non_mapping_document():
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string("- just\n- a list\n")
    assert exc.value.issues[0].message == "document must be a mapping"


def test_wrong_shape_reports_path():
    content = SERVICE.replace("  selector:\n    app: web\n", "  selector: [web]\n")
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string(content)
    assert exc.value.issues[0].path == "spec.selector"


def test_range_errors_are_collected_across_documents():
    bad_service = SERVICE.replace("port: 80", "port: 70000")
    bad_deployment = yaml.safe_dump({
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "web"},
        "spec": {
            "replicas": -1,
            "selector": {"matchLabels": {"app": "web"}},
            "template": {
                "metadata": {"labels": {"app": "web"}},
                "spec": {"containers": [{"name": "web", "image": "nginx"}]},
            },
        },
    })
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string(bad_service + "---\n" + bad_deployment)

    located = {(i.resource, i.path) for i in exc.value.issues}
    assert ("Service/web", "ports[0].port") in located
    assert ("Deployment/web", "replicas") in located


def test_set_based_selectors_rejected():
    content = yaml.safe_dump({
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "web"},
        "spec": {
            "selector": {"matchExpressions": [{"key": "app", "operator": "In", "values": ["web"]}]},
            "template": {"spec": {"containers": [{"name": "web", "image": "nginx"}]}},
        },
    })
    with pytest.raises(ManifestParseError) as exc:
        ManifestParser(context={}).parse_from_string(content)
    assert exc.value.issues[0].path == "spec.selector.matchExpressions"


def test_rolling_update_parameters():
    content = yaml.safe_dump({
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "web"},
        "spec": {
            "strategy": {"type": "RollingUpdate", "rollingUpdate": {"maxSurge": "25%", "maxUnavailable": 0}},
            "selector": {"matchLabels": {"app": "web"}},
            "template": {
                "metadata": {"labels": {"app": "web"}},
                "spec": {"containers": [{
                    "name": "web",
                    "image": "nginx",
                    "env": [{"name": "TOKEN", "valueFrom": {"secretKeyRef": {"name": "web", "key": "token"}}}],
                }]},
            },
        },
    })
    workload = ManifestParser(context={}).parse_from_string(content).workloads[0]
    assert workload.strategy.max_surge == "25%"
    assert workload.strategy.max_unavailable == 0
    assert workload.template.containers[0].env[0].value_from == {"secretKeyRef": {"name": "web", "key": "token"}}
