from wif import DetectionPolicy, Orchestrator, TrustConditionSpec, WIFRequest, universal_factory



def main():
    # Example usage of the universal factory and the setup flow
    gcp_config = {"project_id": "my-gcp-project", "project_number": "123456789012"}

    request = WIFRequest(
        project_id="my-gcp-project",
        project_number="123456789012",
        service_account="github-deployer",
        pool_id="github-pool",
        provider_id="github-provider",
        condition=TrustConditionSpec(
            repository="acme/app",
            allowed_branches=["main"],
            require_actor=True,
        ),
        roles=["roles/run.admin"],
    )

    orchestrator = Orchestrator(
        universal_factory("state_fetcher", gcp_config),
        universal_factory("provisioner", gcp_config),
        universal_factory("bindings", gcp_config, service_account=request.service_account_email),
    )
    report = orchestrator.setup(request, DetectionPolicy(create_new=True, update_in_place=True))

    print(f"Condition: {report.condition.expression}")
    print(f"Detection: {report.detection.summary}")
    for step in report.steps:
        print(f"{step.resource_type} {step.resource_name}: {step.status.value}")

if __name__ == "__main__":
    main()
