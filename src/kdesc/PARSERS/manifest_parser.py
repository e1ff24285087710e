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
Parsers for multi-document Kubernetes manifest YAML files.
"""
import os
import logging
import yaml
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from ..MODELS.manifest import Manifest, RECOGNIZED_KINDS
from ..MODELS.settings import Settings
from ..MODELS.validation_report import Issue, Severity
from ..UTILS.string_interpolation import EnvironmentInterpolator
from ..errors import InterpolationError, ManifestParseError

logger = logging.getLogger(__name__)

_STR_TAG = "tag:yaml.org,2002:str"


class _ShapeError(Exception):
    """A document field has the wrong YAML type."""
    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class ManifestParser:
    """
    Parser for manifest files holding Service, Deployment and Ingress documents.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None, settings: Optional[Settings] = None):
        """
        Initializes the parser.

        :param context: Variables for ${VAR} interpolation. Defaults to the process environment.
        :param settings: Tool settings; defaults apply when omitted.
        """
        self.context = context if context is not None else dict(os.environ)
        self.settings = settings or Settings()

    def parse(self, manifest_path: str) -> Manifest:
        """
        Parses a manifest file from a path.

        :param manifest_path: Path to the manifest file.
        :return: Parsed manifest.
        :raises ManifestParseError: If the file cannot be read as UTF-8 text.
        """
        try:
            with open(manifest_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            issue = Issue(severity=Severity.ERROR, resource="manifest", message=f"cannot read file: {e}")
            raise ManifestParseError([issue], manifest_path) from e
        return self.parse_from_string(content, source=manifest_path)

    def parse_from_string(self, content: str, source: Optional[str] = None) -> Manifest:
        """
        Parses a manifest from a string.

        Every document is checked; problems are collected and raised together.

        :param content: YAML content, documents separated by ``---``.
        :param source: Name used in error messages.
        :return: Parsed manifest.
        :raises InterpolationError: If variables are missing from the context.
        :raises ManifestParseError: If any document is invalid.
        """
        documents = self._load_documents(content, source)

        resources = []
        issues: List[Issue] = []
        for index, document in enumerate(documents):
            if document is None:
                continue
            resource = self._parse_document(index, document, issues)
            if resource is not None:
                resources.append(resource)

        if issues:
            raise ManifestParseError(issues, source)

        logger.debug("Parsed %d resource(s) from %s", len(resources), source or "<string>")
        return Manifest(resources=resources, source=source)

    def _load_documents(self, content: str, source: Optional[str]) -> List[Any]:
        """
        Loads every YAML document, substituting ${VAR} placeholders in its scalars.

        Substitution runs on the composed node tree, so a substituted value is
        never read as YAML and placeholders inside comments are ignored. A plain
        scalar that changed is resolved again: ``port: ${PORT}`` yields a number,
        ``port: "${PORT}"`` stays a string.
        """
        loader = yaml.SafeLoader(content)
        documents = []
        missing: List[str] = []
        try:
            while loader.check_node():
                node = loader.get_node()
                self._interpolate_node(loader, node, missing, set())
                if not missing:
                    documents.append(loader.construct_document(node))
        except yaml.YAMLError as e:
            issue = Issue(severity=Severity.ERROR, resource="manifest", message=f"invalid YAML: {e}")
            raise ManifestParseError([issue], source) from e
        finally:
            loader.dispose()

        if missing:
            raise InterpolationError(missing)
        return documents

    def _interpolate_node(self, loader: yaml.SafeLoader, node: yaml.Node, missing: List[str], seen: set):
        # aliases share node objects; substitute each only once
        if id(node) in seen:
            return
        seen.add(id(node))

        if isinstance(node, yaml.ScalarNode):
            try:
                value = EnvironmentInterpolator.interpolate(node.value, self.context)
            except InterpolationError as e:
                missing.extend(e.missing)
                return
            if value != node.value:
                if node.style is None and node.tag == _STR_TAG:
                    node.tag = loader.resolve(yaml.ScalarNode, value, (True, False))
                node.value = value
        elif isinstance(node, yaml.SequenceNode):
            for item in node.value:
                self._interpolate_node(loader, item, missing, seen)
        elif isinstance(node, yaml.MappingNode):
            for key, item in node.value:
                self._interpolate_node(loader, key, missing, seen)
                self._interpolate_node(loader, item, missing, seen)

    def _parse_document(self, index: int, document: Any, issues: List[Issue]):
        """
        Turns one YAML document into a descriptor, recording problems in issues.
        """
        position = f"document[{index}]"

        def fail(resource: str, path: str, message: str):
            issues.append(Issue(severity=Severity.ERROR, resource=resource, path=path, message=message))

        if not isinstance(document, dict):
            fail(position, "", "document must be a mapping")
            return None

        api_version = document.get('apiVersion')
        kind = document.get('kind')
        if not isinstance(api_version, str) or not isinstance(kind, str) or not api_version or not kind:
            fail(position, "", "apiVersion and kind are required strings")
            return None

        model = RECOGNIZED_KINDS.get((api_version, kind))
        if model is None:
            known = [k for (_, k) in RECOGNIZED_KINDS]
            if kind in known:
                expected = next(v for (v, k) in RECOGNIZED_KINDS if k == kind)
                fail(position, "apiVersion", f"unsupported apiVersion {api_version} for {kind} (expected {expected})")
            elif self.settings.ignore_unknown_kinds:
                logger.warning("Skipping %s: unrecognized kind %s/%s", position, api_version, kind)
            else:
                fail(position, "kind", f"unrecognized kind {api_version}/{kind}")
            return None

        try:
            metadata = self._metadata(document.get('metadata'))
            if not metadata.get('name'):
                fail(position, "metadata.name", f"{kind} must have a name")
                return None
            resource = f"{kind}/{metadata['name']}"
            spec = _as_dict(document.get('spec'), 'spec')
            builder = getattr(self, f"_{kind.lower()}_fields")
            fields = builder(spec)
        except _ShapeError as e:
            fail(position, e.path, e.message)
            return None

        try:
            return model(metadata=metadata, **fields)
        except ValidationError as e:
            for error in e.errors():
                fail(resource, _dotted(error['loc']), error['msg'])
            return None

    def _metadata(self, raw: Any) -> Dict[str, Any]:
        meta = _as_dict(raw, 'metadata')
        fields = _present(meta, name='name', namespace='namespace')
        if meta.get('labels') is not None:
            fields['labels'] = _as_dict(meta['labels'], 'metadata.labels')
        if meta.get('annotations') is not None:
            fields['annotations'] = _as_dict(meta['annotations'], 'metadata.annotations')
        return fields

    def _service_fields(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        """
        Maps a Service spec onto ServiceDescriptor fields.
        """
        ports = []
        for i, p in enumerate(_as_list(spec.get('ports'), 'spec.ports')):
            p = _as_dict(p, f'spec.ports[{i}]')
            ports.append(_present(p, name='name', port='port', target_port='targetPort', protocol='protocol'))

        fields = _present(spec, service_type='type')
        fields['ports'] = ports
        if spec.get('selector') is not None:
            fields['selector'] = _as_dict(spec['selector'], 'spec.selector')
        return fields

    def _deployment_fields(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        """
        Maps a Deployment spec onto WorkloadDescriptor fields.
        """
        fields = _present(spec, replicas='replicas')

        if spec.get('strategy') is not None:
            strategy = _as_dict(spec['strategy'], 'spec.strategy')
            rolling = _as_dict(strategy.get('rollingUpdate'), 'spec.strategy.rollingUpdate')
            fields['strategy'] = {
                **_present(strategy, type='type'),
                **_present(rolling, max_surge='maxSurge', max_unavailable='maxUnavailable'),
            }

        selector = _as_dict(spec.get('selector'), 'spec.selector')
        if selector.get('matchExpressions'):
            raise _ShapeError('spec.selector.matchExpressions', "set-based selectors are not supported")
        fields['selector'] = _as_dict(selector.get('matchLabels'), 'spec.selector.matchLabels')

        template = _as_dict(spec.get('template'), 'spec.template')
        template_meta = _as_dict(template.get('metadata'), 'spec.template.metadata')
        pod_spec = _as_dict(template.get('spec'), 'spec.template.spec')

        containers = []
        for i, c in enumerate(_as_list(pod_spec.get('containers'), 'spec.template.spec.containers')):
            path = f'spec.template.spec.containers[{i}]'
            c = _as_dict(c, path)
            container = _present(c, name='name', image='image')
            container['env'] = [
                _present(_as_dict(e, f'{path}.env[{j}]'), name='name', value='value', value_from='valueFrom')
                for j, e in enumerate(_as_list(c.get('env'), f'{path}.env'))
            ]
            container['ports'] = [
                _present(_as_dict(p, f'{path}.ports[{j}]'),
                         container_port='containerPort', name='name', protocol='protocol')
                for j, p in enumerate(_as_list(c.get('ports'), f'{path}.ports'))
            ]
            containers.append(container)

        fields['template'] = {
            'labels': _as_dict(template_meta.get('labels'), 'spec.template.metadata.labels'),
            'containers': containers,
        }
        return fields

    def _ingress_fields(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        """
        Maps an Ingress spec onto RouteDescriptor fields.
        """
        fields = _present(spec, ingress_class_name='ingressClassName')

        rules = []
        for i, r in enumerate(_as_list(spec.get('rules'), 'spec.rules')):
            path = f'spec.rules[{i}]'
            r = _as_dict(r, path)
            http = _as_dict(r.get('http'), f'{path}.http')
            paths = []
            for j, p in enumerate(_as_list(http.get('paths'), f'{path}.http.paths')):
                p_path = f'{path}.http.paths[{j}]'
                p = _as_dict(p, p_path)
                backend = _as_dict(p.get('backend'), f'{p_path}.backend')
                service = _as_dict(backend.get('service'), f'{p_path}.backend.service')
                port = _as_dict(service.get('port'), f'{p_path}.backend.service.port')
                entry = _present(p, path='path', path_type='pathType')
                entry.update(_present(service, backend_service_name='name'))
                entry.update(_present(port, backend_service_port_name='name',
                                      backend_service_port_number='number'))
                paths.append(entry)
            rule = _present(r, host='host')
            rule['paths'] = paths
            rules.append(rule)
        fields['rules'] = rules

        fields['tls'] = [
            _present(_as_dict(t, f'spec.tls[{i}]'), hosts='hosts', secret_name='secretName')
            for i, t in enumerate(_as_list(spec.get('tls'), 'spec.tls'))
        ]
        return fields


def _as_dict(value: Any, path: str) -> Dict[str, Any]:
    """
    Returns value as a mapping; None becomes an empty one.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _ShapeError(path, f"expected a mapping, got {type(value).__name__}")
    return value


def _as_list(value: Any, path: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise _ShapeError(path, f"expected a list, got {type(value).__name__}")
    return value


def _present(source: Dict[str, Any], **mapping: str) -> Dict[str, Any]:
    """
    Copies the keys of source that are set, renaming them.

    :param source: YAML mapping.
    :param mapping: model field name -> YAML key.
    :return: Fields to pass to a model.
    """
    return {field: source[key] for field, key in mapping.items() if source.get(key) is not None}


def _dotted(loc) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path
