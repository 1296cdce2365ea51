"""Built-in hub/spoke sample topology used for dry runs and examples."""

from datetime import datetime, timezone

from .models import (
    ApplicationGateway,
    AzureFirewall,
    LoadBalancer,
    NATGateway,
    NetworkSecurityGroup,
    NetworkTopology,
    PrivateDNSZone,
    PrivateEndpoint,
    Route,
    RouteTable,
    SecurityRule,
    Subnet,
    VirtualNetwork,
    VNetLink,
    VNetPeering,
    VPNGateway,
)


def build_sample_topology(
    subscription_id: str = "00000000-0000-0000-0000-000000000000",
    resource_group: str = "rg-network-demo",
) -> NetworkTopology:
    """Build a small hub/spoke topology with a few deliberate weaknesses.

    Args:
        subscription_id: Subscription ID embedded in resource IDs.
        resource_group: Resource group embedded in resource IDs.

    Returns:
        Topology snapshot.
    """
    base = f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}/providers"

    def rid(resource_type: str, name: str) -> str:
        return f"{base}/{resource_type}/{name}"

    hub_id = rid("Microsoft.Network/virtualNetworks", "vnet-hub")
    spoke_id = rid("Microsoft.Network/virtualNetworks", "vnet-spoke")
    nsg_id = rid("Microsoft.Network/networkSecurityGroups", "nsg-web")
    rt_id = rid("Microsoft.Network/routeTables", "rt-main")
    nat_id = rid("Microsoft.Network/natGateways", "nat-outbound")
    db_subnet_id = f"{hub_id}/subnets/subnet-db"

    hub = VirtualNetwork(
        id=hub_id,
        name="vnet-hub",
        resource_group=resource_group,
        location="eastus",
        address_space=("10.0.0.0/16",),
        dns_servers=("10.0.0.4", "10.0.0.5"),
        enable_ddos_protection=True,
        subnets=(
            Subnet(id=f"{hub_id}/subnets/AzureFirewallSubnet", name="AzureFirewallSubnet", address_prefix="10.0.0.0/26"),
            Subnet(
                id=f"{hub_id}/subnets/subnet-web",
                name="subnet-web",
                address_prefix="10.0.1.0/24",
                network_security_group=nsg_id,
                route_table=rt_id,
                nat_gateway=nat_id,
                service_endpoints=("Microsoft.Storage", "Microsoft.KeyVault"),
            ),
            Subnet(
                id=db_subnet_id,
                name="subnet-db",
                address_prefix="10.0.2.0/24",
                network_security_group=nsg_id,
                private_endpoints=(rid("Microsoft.Network/privateEndpoints", "pe-sql"),),
                service_endpoints=("Microsoft.Sql",),
            ),
            Subnet(id=f"{hub_id}/subnets/GatewaySubnet", name="GatewaySubnet", address_prefix="10.0.255.0/27"),
        ),
        peerings=(
            VNetPeering(
                id=f"{hub_id}/virtualNetworkPeerings/peer-to-spoke",
                name="peer-to-spoke",
                remote_vnet_id=spoke_id,
                remote_vnet_name="vnet-spoke",
                peering_state="Connected",
                allow_vnet_access=True,
                allow_forwarded_traffic=True,
                allow_gateway_transit=True,
            ),
        ),
    )

    spoke = VirtualNetwork(
        id=spoke_id,
        name="vnet-spoke",
        resource_group=resource_group,
        location="eastus",
        address_space=("10.1.0.0/16",),
        subnets=(
            Subnet(
                id=f"{spoke_id}/subnets/subnet-app",
                name="subnet-app",
                address_prefix="10.1.1.0/24",
                nat_gateway=nat_id,
                delegations=("Microsoft.Web/serverFarms",),
            ),
        ),
        peerings=(
            VNetPeering(
                id=f"{spoke_id}/virtualNetworkPeerings/peer-to-hub",
                name="peer-to-hub",
                remote_vnet_id=hub_id,
                remote_vnet_name="vnet-hub",
                peering_state="Connected",
                allow_vnet_access=True,
                use_remote_gateways=True,
            ),
        ),
    )

    nsg = NetworkSecurityGroup(
        id=nsg_id,
        name="nsg-web",
        resource_group=resource_group,
        location="eastus",
        security_rules=(
            SecurityRule(
                name="AllowHTTP", priority=100, protocol="TCP", source_address_prefix="*",
                destination_address_prefix="*", destination_port_range="80", description="Allow HTTP traffic",
            ),
            SecurityRule(
                name="AllowHTTPS", priority=110, protocol="TCP", source_address_prefix="*",
                destination_address_prefix="*", destination_port_range="443", description="Allow HTTPS traffic",
            ),
            SecurityRule(
                name="AllowSSH", priority=120, protocol="TCP", source_address_prefix="0.0.0.0/0",
                destination_address_prefix="*", destination_port_range="22",
            ),
            SecurityRule(
                name="DenyAll", priority=4096, access="Deny", source_address_prefix="*",
                destination_address_prefix="*", destination_port_range="*",
                description="Deny all other inbound traffic",
            ),
        ),
    )

    unused_nsg = NetworkSecurityGroup(
        id=rid("Microsoft.Network/networkSecurityGroups", "nsg-legacy"),
        name="nsg-legacy",
        resource_group=resource_group,
        location="eastus",
    )

    return NetworkTopology(
        subscription_id=subscription_id,
        resource_group=resource_group,
        timestamp=datetime.now(timezone.utc),
        virtual_networks=(hub, spoke),
        network_security_groups=(nsg, unused_nsg),
        private_endpoints=(
            PrivateEndpoint(
                id=rid("Microsoft.Network/privateEndpoints", "pe-sql"),
                name="pe-sql",
                resource_group=resource_group,
                location="eastus",
                subnet_id=db_subnet_id,
                private_ip_address="10.0.2.10",
                private_link_service_id=rid("Microsoft.Sql/servers", "sql-server-prod"),
                connection_state="Approved",
                group_ids=("sqlServer",),
            ),
            PrivateEndpoint(
                id=rid("Microsoft.Network/privateEndpoints", "pe-storage"),
                name="pe-storage",
                resource_group=resource_group,
                location="eastus",
                subnet_id=db_subnet_id,
                private_ip_address="10.0.2.11",
                private_link_service_id=rid("Microsoft.Storage/storageAccounts", "stprod"),
                connection_state="Approved",
                group_ids=("blob",),
            ),
        ),
        private_dns_zones=(
            PrivateDNSZone(
                id=rid("Microsoft.Network/privateDnsZones", "privatelink.database.windows.net"),
                name="privatelink.database.windows.net",
                resource_group=resource_group,
                record_sets=5,
                vnet_links=(VNetLink(vnet_id=hub_id, vnet_name="vnet-hub"),),
            ),
        ),
        route_tables=(
            RouteTable(
                id=rt_id,
                name="rt-main",
                resource_group=resource_group,
                location="eastus",
                routes=(
                    Route(name="route-to-internet", address_prefix="0.0.0.0/0",
                          next_hop_type="VirtualAppliance", next_hop_ip_address="10.0.0.4"),
                    Route(name="route-to-onprem", address_prefix="192.168.0.0/16",
                          next_hop_type="VirtualAppliance", next_hop_ip_address="10.0.0.4"),
                ),
            ),
        ),
        nat_gateways=(
            NATGateway(
                id=nat_id,
                name="nat-outbound",
                resource_group=resource_group,
                location="eastus",
                public_ip_addresses=(rid("Microsoft.Network/publicIPAddresses", "pip-nat"),),
                idle_timeout_minutes=10,
            ),
        ),
        vpn_gateways=(
            VPNGateway(
                id=rid("Microsoft.Network/virtualNetworkGateways", "vpn-gateway"),
                name="vpn-gateway",
                resource_group=resource_group,
                location="eastus",
                vnet_id=hub_id,
                sku="VpnGw2",
            ),
        ),
        load_balancers=(
            LoadBalancer(
                id=rid("Microsoft.Network/loadBalancers", "lb-web"),
                name="lb-web",
                resource_group=resource_group,
                location="eastus",
                sku="Standard",
                type="Public",
            ),
        ),
        application_gateways=(
            ApplicationGateway(
                id=rid("Microsoft.Network/applicationGateways", "appgw-web"),
                name="appgw-web",
                resource_group=resource_group,
                location="eastus",
                sku="Standard_v2",
                tier="Standard_v2",
                capacity=2,
                subnet_id=f"{spoke_id}/subnets/subnet-app",
            ),
        ),
        azure_firewalls=(
            AzureFirewall(
                id=rid("Microsoft.Network/azureFirewalls", "fw-hub"),
                name="fw-hub",
                resource_group=resource_group,
                location="eastus",
                sku="Standard",
                subnet_id=f"{hub_id}/subnets/AzureFirewallSubnet",
                private_ip_address="10.0.0.4",
                public_ip_addresses=(rid("Microsoft.Network/publicIPAddresses", "pip-fw"),),
                threat_intel_mode="Alert",
            ),
        ),
    )
