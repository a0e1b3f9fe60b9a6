"""
Interactive MCMC chain diagnostics using Streamlit
Upload exported chains (or generate demo chains) and inspect mixing and convergence
"""

import streamlit as st
import sys
import os

# Add parent directory to path for imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from mcmcdiag.diagnostics import (
    Chain,
    ChainSet,
    ConvergenceDiagnostics,
    ConvergenceVerdict,
    DiagnosticsError,
    convergence_check,
    derive_ratio,
    gelman_rubin,
    summarize,
)
from mcmcdiag.sampling import replicate_chains, sinusoidal_chain
from mcmcdiag.visualization import (
    autocorrelation_figure,
    chain_set_trace_figure,
    trace_figure,
)

# Page configuration
st.set_page_config(
    page_title="MCMC Chain Diagnostics",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.title("📈 MCMC Chain Diagnostics")

st.markdown("""
Inspect the chains returned by a sampler before trusting the posterior.

**What you can do:**
- Upload one or more chains exported as CSV (one column per parameter)
- Discard burn-in and thin the stored iterations
- Check autocorrelation, effective sample size and HDIs
- Compare replicate runs with the Gelman-Rubin statistic
""")

# Sidebar controls
st.sidebar.header("🎛️ Chains")

source = st.sidebar.radio("Source", ["Demo chains", "Upload CSV"])

burnin = st.sidebar.number_input("Burn-in (iterations)", min_value=0, value=0, step=100)
thin = st.sidebar.number_input("Thinning interval", min_value=1, value=1, step=1)

chains = []

if source == "Demo chains":
    demo = st.sidebar.selectbox(
        "Demo scenario",
        ["Well mixed", "Sticky (high autocorrelation)", "Not converged", "Drifting"],
    )
    n_chains = st.sidebar.slider("Number of chains", min_value=1, max_value=6, value=3)
    n_iter = st.sidebar.slider("Iterations per chain", min_value=200, max_value=5000, value=2000, step=100)
    seed = st.sidebar.number_input("Seed", value=42, step=1)

    if demo == "Drifting":
        raw = [sinusoidal_chain(n_iter, seed=int(seed) + i).samples for i in range(n_chains)]
    else:
        rho = 0.97 if demo.startswith("Sticky") else 0.5
        means = [3.0 * i for i in range(n_chains)] if demo == "Not converged" else None
        demo_set = replicate_chains(n_chains, n_iter, rho=rho, means=means, n_params=2, seed=int(seed))
        raw = [c.samples for c in demo_set]

    for samples in raw:
        try:
            chains.append(Chain.from_sampler_output(samples, burnin=int(burnin), thin=int(thin)))
        except DiagnosticsError as exc:
            st.error(str(exc))

else:
    uploads = st.sidebar.file_uploader(
        "Chain files", type=["csv", "txt"], accept_multiple_files=True,
        help="Header row of parameter names; one row per stored iteration",
    )
    for upload in uploads or []:
        try:
            chains.append(Chain.from_csv(upload, burnin=int(burnin), thin=int(thin)))
        except (DiagnosticsError, ValueError) as exc:
            st.error(f"{upload.name}: {exc}")

if not chains:
    st.info("Add at least one chain to start.")
    st.stop()

try:
    chain_set = ChainSet(tuple(chains))
except DiagnosticsError as exc:
    st.error(str(exc))
    st.stop()

first = chain_set[0]
param_names = [first.parameter_name(p) for p in range(first.dimensionality)]

st.sidebar.header("📊 Summary")
probability = st.sidebar.slider("HDI probability", min_value=0.5, max_value=0.99, value=0.95, step=0.01)
max_lag = st.sidebar.slider("Max autocorrelation lag", min_value=5, max_value=200, value=50)
threshold = st.sidebar.number_input("R̂ threshold", min_value=1.0, value=1.1, step=0.01)

tab1, tab2, tab3 = st.tabs(["📋 Summary", "🔍 Traces", "🔗 Convergence"])

with tab1:
    st.subheader("Posterior summary (chains pooled)")
    report = summarize(chain_set.pooled(), probability=probability)
    st.dataframe(report.as_rows(), use_container_width=True)

    if first.dimensionality >= 2:
        with st.expander("Variance ratio (heritability / repeatability)"):
            numerator = st.selectbox("Numerator component", param_names, index=0)
            denominator = st.multiselect("Denominator components", param_names, default=param_names)
            if denominator:
                try:
                    ratio = derive_ratio(chain_set.pooled(), numerator, denominator, name="ratio")
                    st.dataframe(summarize(ratio, probability=probability).as_rows())
                except DiagnosticsError as exc:
                    st.error(str(exc))

with tab2:
    parameter = st.selectbox("Parameter", param_names, key="trace_parameter")
    index = param_names.index(parameter)
    chain_no = st.selectbox("Chain", list(range(1, len(chain_set) + 1)))
    chain = chain_set[chain_no - 1]

    st.plotly_chart(trace_figure(chain, index, probability), use_container_width=True)
    st.plotly_chart(autocorrelation_figure(chain, index, max_lag), use_container_width=True)

with tab3:
    if len(chain_set) < 2:
        st.warning("Run at least two independent chains to assess convergence.")
    else:
        rows = []
        for p, name in enumerate(param_names):
            verdict = convergence_check(chain_set, p, threshold)
            rows.append({
                'parameter': name,
                'R̂': gelman_rubin(chain_set, p),
                'converged': verdict is ConvergenceVerdict.CONVERGED,
            })
        st.dataframe(rows, use_container_width=True)

        parameter = st.selectbox("Parameter", param_names, key="replicate_parameter")
        st.plotly_chart(
            chain_set_trace_figure(chain_set, param_names.index(parameter)),
            use_container_width=True,
        )

        diagnostics = ConvergenceDiagnostics(r_hat_threshold=threshold)
        result = diagnostics.diagnose_multiple_chains(chain_set)

        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("Max R̂", f"{result.r_hat:.3f}")
        with col2:
            st.metric("Total ESS (worst)", f"{result.ess:.0f}")
        with col3:
            st.metric("Converged", "Yes" if result.converged else "No")

        for warning in result.warnings:
            st.warning(warning)

        recommendations = diagnostics.recommend_sampling_params(result)
        if recommendations:
            st.subheader("Suggested sampler settings")
            st.json(recommendations)
