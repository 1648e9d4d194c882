"""Service configuration document generation.

Deployments are created with a ServiceConfiguration XML document rendered
from the cloud configuration of the service.
"""

from jinja2 import Template

from nimbus.models.service import ServiceConfiguration, ServiceDescriptor

SERVICE_CONFIGURATION_TEMPLATE = """\
<?xml version="1.0" encoding="utf-8"?>
<ServiceConfiguration serviceName="{{ service_name|e }}" \
xmlns="http://schemas.microsoft.com/ServiceHosting/2008/10/ServiceConfiguration" \
osFamily="{{ os_family|e }}" osVersion="{{ os_version|e }}">
{% for role in roles %}
  <Role name="{{ role.name|e }}">
    <Instances count="{{ role.instances }}" />
    <ConfigurationSettings>
{% for key, value in role.settings.items() %}
      <Setting name="{{ key|e }}" value="{{ value|e }}" />
{% endfor %}
    </ConfigurationSettings>
{% if role.certificates %}
    <Certificates>
{% for cert in role.certificates %}
      <Certificate name="{{ cert.name|e }}" thumbprint="{{ cert.thumbprint|e }}" \
thumbprintAlgorithm="{{ cert.thumbprint_algorithm|e }}" />
{% endfor %}
    </Certificates>
{% endif %}
  </Role>
{% endfor %}
</ServiceConfiguration>
"""


def render_service_configuration(
    descriptor: ServiceDescriptor, configuration: ServiceConfiguration
) -> str:
    """Render the ServiceConfiguration document sent with a deployment.

    Roles are emitted in descriptor order; a role missing from the
    configuration gets one instance and no settings.
    """
    roles = []
    for role in descriptor.roles:
        settings = configuration.roles.get(role.name)
        roles.append(
            {
                "name": role.name,
                "instances": settings.instances if settings else 1,
                "settings": settings.settings if settings else {},
                "certificates": settings.certificates if settings else [],
            }
        )

    template = Template(SERVICE_CONFIGURATION_TEMPLATE, trim_blocks=True)
    return template.render(
        service_name=descriptor.name,
        os_family=configuration.os_family,
        os_version=configuration.os_version,
        roles=roles,
    )
